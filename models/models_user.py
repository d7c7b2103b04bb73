import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime
from db import Base

ADMIN_ROLES = ("admin", "super_admin")


class AppUser(Base):
    __tablename__ = "app_users"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255))
    role = Column(String(32), nullable=False, default="partner")  # partner/admin/super_admin/student/kam
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=False), default=datetime.utcnow, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.is_active and self.role in ADMIN_ROLES

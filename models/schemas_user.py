from pydantic import BaseModel
from datetime import datetime

class UserOut(BaseModel):
    id: str
    email: str
    full_name: str | None
    role: str
    is_active: bool
    created_at: datetime
    class Config:
        from_attributes = True

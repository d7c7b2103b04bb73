from sqlalchemy.orm import Session
from models.models_user import AppUser

def get_user_by_id(db: Session, user_id: str) -> AppUser | None:
    return db.get(AppUser, user_id)

def create_user(db: Session, *, email: str, full_name: str | None, role: str) -> AppUser:
    user = AppUser(email=email.lower(), full_name=full_name, role=role)
    db.add(user)
    return user

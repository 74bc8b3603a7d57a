from typing import Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from storefront.models.user import User
from storefront.schemas.auth import SignupRequest
from storefront.security import get_password_hash, verify_password


class AuthService:
    """Credential store operations on users"""

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def create_user(db: Session, data: SignupRequest) -> User:
        if AuthService.get_user_by_email(db, data.email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")
        user = User(
            name=data.name,
            email=data.email,
            password_hash=get_password_hash(data.password),
            role="customer",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> User:
        user = AuthService.get_user_by_email(db, email)
        if not user or not verify_password(password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
        return user

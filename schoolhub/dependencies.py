"""Reusable FastAPI dependencies for auth and database access."""
from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader, OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .auth import decode_token
from .config import get_settings
from .database import get_db
from .models import RoleEnum, Teacher, User
from .schemas import Actor
from .store import BookingStore

oauth_scheme = OAuth2PasswordBearer(tokenUrl="/users/login")
service_api_key_header = APIKeyHeader(name="X-Service-Key", auto_error=False)


def get_current_user(token: str = Depends(oauth_scheme), db: Session = Depends(get_db)) -> User:
    payload = decode_token(token)
    username: Optional[str] = payload.get("sub")
    if username is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing subject in token")
    user = db.query(User).filter(User.username == username).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_actor(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> Actor:
    """Resolve the caller's id, role and linked teacher record for this request."""
    teacher_id = db.query(Teacher.id).filter(Teacher.auth_id == current_user.id).scalar()
    return Actor(id=current_user.id, role=current_user.role, teacher_id=teacher_id)


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != RoleEnum.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admins only")
    return current_user


def get_booking_store(db: Session = Depends(get_db)) -> BookingStore:
    return BookingStore(db)


def require_service_key(api_key: str = Security(service_api_key_header)) -> None:
    if not api_key or api_key != get_settings().service_api_key:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid service key")

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.security import decode_access_token
from app.db.session import SessionLocal
from app.db.models.user import User


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_bearer_token(authorization: Optional[str] = Header(default=None)) -> str:
    """Extract the token from `Authorization: Bearer <token>`."""
    if not authorization:
        raise _unauthorized("No authorization header")

    parts = authorization.split()
    if len(parts) < 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise _unauthorized("No token provided")

    return parts[1]


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Resolve the acting user from a verified token."""
    try:
        payload = decode_access_token(token, settings)
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    user_id = payload.get("id")
    if user_id is None:
        raise _unauthorized("Invalid token")

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise _unauthorized("User not found")

    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Gate for /api/admin routes."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin only."
        )
    return user

"""
Account operations: registration, login, profile, password and stored CV analysis.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import AppException, NotFoundException, ValidationException
from app.core.security import hash_password, verify_password
from app.db.models.enums import UserRole
from app.db.models.user import User
from app.db.transaction import transaction

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
EMAIL_TAKEN = "Email already registered"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundException("User not found")
    return user


def ensure_email_available(db: Session, email: str, exclude_user_id: Optional[int] = None) -> None:
    query = db.query(User).filter(User.email == normalize_email(email))
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    if query.first():
        raise ValidationException(EMAIL_TAKEN)


def create_user(
    db: Session,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    phone_number: Optional[str] = None,
    role: str = UserRole.USER.value,
) -> User:
    """Build and stage a new user. Caller owns the transaction."""
    ensure_email_available(db, email)
    user = User(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=normalize_email(email),
        password_hash=hash_password(password),
        phone_number=phone_number,
        role=role,
    )
    db.add(user)
    db.flush()
    return user


def register_user(db: Session, first_name: str, last_name: str, email: str,
                  password: str, phone_number: Optional[str] = None) -> User:
    with transaction(db):
        user = create_user(db, first_name, last_name, email, password, phone_number)
    db.refresh(user)
    logger.info(f"User registered: user_id={user.id}")
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Return the user for valid credentials.

    Unknown email and wrong password produce the same 401.
    """
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.info("Login failed: invalid credentials")
        raise AppException(INVALID_CREDENTIALS, status_code=401)
    return user


def update_profile(db: Session, user: User, first_name: str, last_name: str,
                   email: str, phone_number: Optional[str] = None) -> User:
    with transaction(db):
        if normalize_email(email) != user.email:
            ensure_email_available(db, email, exclude_user_id=user.id)
        user.first_name = first_name.strip()
        user.last_name = last_name.strip()
        user.email = normalize_email(email)
        user.phone_number = phone_number
    db.refresh(user)
    logger.info(f"Profile updated: user_id={user.id}")
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise ValidationException("Current password is incorrect")
    with transaction(db):
        user.password_hash = hash_password(new_password)
    logger.info(f"Password changed: user_id={user.id}")


def set_cv_analysis(db: Session, user: User, analysis: dict) -> User:
    """Overwrite the user's stored CV analysis."""
    with transaction(db):
        user.cv_skills = analysis.get("skills") or []
        user.cv_experience = analysis.get("experience") or []
        user.cv_education = analysis.get("education") or []
        user.cv_summary = analysis.get("summary") or ""
    db.refresh(user)
    return user

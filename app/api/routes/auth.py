"""
Registration, login and logout.

Tokens are stateless JWTs; logout only acknowledges and the client drops
its token.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_current_user, get_db
from app.core.config import Settings, get_settings
from app.core.exceptions import AppException
from app.core.rate_limit import auth_rate_limit
from app.core.security import create_user_token
from app.db.models.user import User
from app.schemas.auth import AuthUser, LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from app.schemas.common import AckResponse
from app.services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    dependencies=[Depends(auth_rate_limit)],
)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    try:
        user = auth_service.register_user(
            db,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password=payload.password,
            phone_number=payload.phone_number,
        )
        return RegisterResponse(message="Account created successfully", user=AuthUser.model_validate(user))

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to register user: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create account"
        )


@router.post("/login", response_model=LoginResponse, dependencies=[Depends(auth_rate_limit)])
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        user = auth_service.authenticate(db, payload.email, payload.password)
        token = create_user_token(user, settings)
        logger.info(f"User logged in: user_id={user.id}")
        return LoginResponse(token=token, user=AuthUser.model_validate(user))

    except (HTTPException, AppException):
        raise
    except Exception as e:
        logger.error(f"Login failed unexpectedly: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to log in"
        )


@router.post("/logout", response_model=AckResponse)
def logout(user: User = Depends(get_current_user)):
    logger.info(f"User logged out: user_id={user.id}")
    return AckResponse(message="Logged out successfully")

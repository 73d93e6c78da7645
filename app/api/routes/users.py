"""
Profile, password and CV endpoints for the signed-in user.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_current_user, get_db
from app.core.exceptions import AppException
from app.db.models.user import User
from app.llm.provider import LLMProvider
from app.llm.router import get_llm_provider
from app.schemas.common import AckResponse
from app.schemas.user import (
    ChangePasswordRequest,
    CVAnalysis,
    CVAnalyzeRequest,
    ProfileUpdateRequest,
    UserProfile,
)
from app.services import auth_service, coach_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["User"])


@router.get("/profile", response_model=UserProfile)
def get_profile(user: User = Depends(get_current_user)):
    return UserProfile.model_validate(user)


@router.put("/profile", response_model=UserProfile)
def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = auth_service.update_profile(
            db,
            user,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            phone_number=payload.phone_number,
        )
        return UserProfile.model_validate(user)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update profile: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )


@router.post("/change-password", response_model=AckResponse)
def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        auth_service.change_password(db, user, payload.current_password, payload.new_password)
        return AckResponse(message="Password changed successfully")

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to change password: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to change password"
        )


@router.get("/cv", response_model=CVAnalysis)
def get_cv(user: User = Depends(get_current_user)):
    """Stored CV analysis; unreadable stored values come back as empty defaults."""
    return CVAnalysis.model_validate(user.cv_analysis)


@router.put("/cv", response_model=CVAnalysis)
def replace_cv(
    payload: CVAnalysis,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = auth_service.set_cv_analysis(db, user, payload.model_dump())
        return CVAnalysis.model_validate(user.cv_analysis)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to store CV analysis: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store CV analysis"
        )


@router.post("/cv/analyze", response_model=CVAnalysis)
def analyze_cv(
    payload: CVAnalyzeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: LLMProvider = Depends(get_llm_provider),
):
    try:
        analysis = coach_service.analyze_cv(db, provider, user, payload.cv_text)
        return CVAnalysis.model_validate(analysis)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to analyze CV: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to analyze CV"
        )

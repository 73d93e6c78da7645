import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_current_user, get_db
from app.core.exceptions import AppException
from app.db.models.user import User
from app.schemas.plan import PlanResponse
from app.services import plan_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plans", tags=["Plans"])


@router.get("/public", response_model=List[PlanResponse])
def list_public_plans(db: Session = Depends(get_db)):
    """Active plans for the pricing page; no authentication."""
    try:
        return plan_service.get_public_plans(db)
    except Exception as e:
        logger.error(f"Failed to fetch public plans: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch plans"
        )


@router.get("", response_model=List[PlanResponse])
def list_plans(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return plan_service.get_public_plans(db)
    except Exception as e:
        logger.error(f"Failed to fetch plans: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch plans"
        )


@router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(
    plan_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return plan_service.get_plan(db, plan_id)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        logger.error(f"Failed to fetch plan {plan_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch plan"
        )

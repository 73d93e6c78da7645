"""
Subscription endpoints for the signed-in user.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_current_user, get_db
from app.core.exceptions import AppException
from app.db.models.user import User
from app.schemas.subscription import CancelResponse, SubscribeRequest, SubscriptionResponse
from app.services import subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])


@router.get("", response_model=List[SubscriptionResponse])
def list_subscriptions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return [subscription_service.to_response(s) for s in subscription_service.list_subscriptions(db, user.id)]
    except Exception as e:
        logger.error(f"Failed to fetch subscriptions: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch subscriptions"
        )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SubscriptionResponse)
def subscribe(
    payload: SubscribeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Switch the caller to a plan; any previously active subscription is cancelled."""
    try:
        subscription = subscription_service.subscribe(db, user.id, payload.plan_id)
        return subscription_service.to_response(subscription)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create subscription: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create subscription"
        )


@router.get("/current", response_model=Optional[SubscriptionResponse])
def get_current_subscription(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The active, unexpired subscription, or null."""
    try:
        subscription = subscription_service.get_current_subscription(db, user.id)
        return subscription_service.to_response(subscription) if subscription else None
    except Exception as e:
        logger.error(f"Failed to fetch current subscription: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch subscription"
        )


@router.delete("/current", response_model=CancelResponse)
def cancel_subscription(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        cancelled = subscription_service.cancel_subscriptions(db, user.id)
        return CancelResponse(message="Subscription cancelled", cancelled=cancelled)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to cancel subscription: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel subscription"
        )

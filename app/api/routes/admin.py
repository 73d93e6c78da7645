"""
Admin back-office endpoints.

Every route requires role=admin. These handlers deliberately work across
users (no owner scope).
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db, require_admin
from app.core.exceptions import AppException
from app.db.models.user import User
from app.schemas.admin import (
    AdminUserCreate,
    AdminUserList,
    AdminUserMutationResponse,
    AdminUserResponse,
    AdminUserUpdate,
    DashboardStats,
    InterviewAnalytics,
    RecentInterview,
    RevenueAnalytics,
    UserAnalytics,
    UserStats,
)
from app.schemas.common import AckResponse
from app.schemas.discussion import AdminDiscussionDetail, AdminDiscussionList, DiscussionDeleteResponse
from app.schemas.plan import PlanCreate, PlanResponse, PlanUpdate
from app.schemas.subscription import AdminSubscriptionGrant, AdminSubscriptionList, CancelResponse
from app.services import admin_service, discussion_service, plan_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def _server_error(db: Session, action: str, e: Exception) -> HTTPException:
    db.rollback()
    logger.error(f"Admin failed to {action}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}"
    )


# --- users ------------------------------------------------------------------

@router.get("/users", response_model=AdminUserList)
def list_users(
    search: Optional[str] = Query(None, description="Match first name, last name or email"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    try:
        return admin_service.list_users(db, search=search, page=page, limit=limit)
    except Exception as e:
        raise _server_error(db, "fetch users", e)


@router.get("/users/stats", response_model=UserStats)
def user_stats(db: Session = Depends(get_db)):
    try:
        return admin_service.get_user_stats(db)
    except Exception as e:
        raise _server_error(db, "fetch user statistics", e)


@router.get("/users/{user_id}", response_model=AdminUserResponse)
def get_user(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    try:
        return admin_service.get_user_detail(db, user_id)
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "fetch user", e)


@router.post("/users", status_code=status.HTTP_201_CREATED, response_model=AdminUserMutationResponse)
def create_user(payload: AdminUserCreate, db: Session = Depends(get_db)):
    try:
        user = admin_service.create_user(db, payload)
        return AdminUserMutationResponse(message="User created successfully", user=user)
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "create user", e)


@router.put("/users/{user_id}", response_model=AdminUserMutationResponse)
def update_user(
    payload: AdminUserUpdate,
    user_id: int = Path(..., ge=1),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        user = admin_service.update_user(db, user_id, payload, acting_admin_id=admin.id)
        return AdminUserMutationResponse(message="User updated successfully", user=user)
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "update user", e)


@router.delete("/users/{user_id}", response_model=AckResponse)
def delete_user(
    user_id: int = Path(..., ge=1),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete a user with their discussions, messages, subscriptions and meetings."""
    try:
        admin_service.delete_user(db, user_id, acting_admin_id=admin.id)
        return AckResponse(message="User deleted successfully")
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "delete user", e)


@router.put("/users/{user_id}/subscription", response_model=AdminUserMutationResponse)
def set_user_subscription(
    payload: AdminSubscriptionGrant,
    user_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
):
    try:
        user = admin_service.set_user_subscription(db, user_id, payload.plan_id, payload.duration)
        return AdminUserMutationResponse(message="User subscription updated successfully", user=user)
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "update user subscription", e)


@router.delete("/users/{user_id}/subscription", response_model=CancelResponse)
def cancel_user_subscription(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    try:
        cancelled = admin_service.cancel_user_subscription(db, user_id)
        return CancelResponse(message="User subscription cancelled successfully", cancelled=cancelled)
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "cancel user subscription", e)


# --- plans ------------------------------------------------------------------

@router.get("/plans", response_model=List[PlanResponse])
def list_plans(db: Session = Depends(get_db)):
    """All plans, including inactive ones."""
    try:
        return plan_service.list_all_plans(db)
    except Exception as e:
        raise _server_error(db, "fetch plans", e)


@router.post("/plans", status_code=status.HTTP_201_CREATED, response_model=PlanResponse)
def create_plan(payload: PlanCreate, db: Session = Depends(get_db)):
    try:
        return plan_service.create_plan(db, payload)
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "create plan", e)


@router.put("/plans/{plan_id}", response_model=PlanResponse)
def update_plan(
    payload: PlanUpdate,
    plan_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
):
    try:
        return plan_service.update_plan(db, plan_id, payload)
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "update plan", e)


@router.delete("/plans/{plan_id}", response_model=AckResponse)
def delete_plan(plan_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    """409 while any subscription references the plan; deactivate it instead."""
    try:
        plan_service.delete_plan(db, plan_id)
        return AckResponse(message="Plan deleted successfully")
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "delete plan", e)


# --- subscriptions ----------------------------------------------------------

@router.get("/subscriptions", response_model=AdminSubscriptionList)
def list_subscriptions(
    status_filter: Optional[str] = Query(
        None,
        alias="status",
        pattern="^(all|active|expired|cancelled)$",
    ),
    search: Optional[str] = Query(None, description="Match owner first name, last name or email"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    try:
        return admin_service.list_subscriptions(
            db, status=status_filter, search=search, page=page, limit=limit
        )
    except Exception as e:
        raise _server_error(db, "fetch subscriptions", e)


# --- analytics --------------------------------------------------------------

@router.get("/analytics/dashboard", response_model=DashboardStats)
def dashboard(db: Session = Depends(get_db)):
    try:
        return admin_service.get_dashboard_stats(db)
    except Exception as e:
        raise _server_error(db, "fetch dashboard stats", e)


@router.get("/analytics/users", response_model=UserAnalytics)
def user_analytics(db: Session = Depends(get_db)):
    try:
        return admin_service.get_user_analytics(db)
    except Exception as e:
        raise _server_error(db, "fetch user analytics", e)


@router.get("/analytics/interviews", response_model=InterviewAnalytics)
def interview_analytics(db: Session = Depends(get_db)):
    try:
        return admin_service.get_interview_analytics(db)
    except Exception as e:
        raise _server_error(db, "fetch interview analytics", e)


@router.get("/analytics/revenue", response_model=RevenueAnalytics)
def revenue_analytics(db: Session = Depends(get_db)):
    try:
        return admin_service.get_revenue_analytics(db)
    except Exception as e:
        raise _server_error(db, "fetch revenue analytics", e)


@router.get("/analytics/recent-interviews", response_model=List[RecentInterview])
def recent_interviews(db: Session = Depends(get_db)):
    try:
        return admin_service.get_recent_interviews(db)
    except Exception as e:
        raise _server_error(db, "fetch recent interviews", e)


# --- discussions ------------------------------------------------------------

@router.get("/discussions", response_model=AdminDiscussionList)
def list_discussions(
    search: Optional[str] = Query(None, description="Match title or owner name/email"),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(active|archived|completed)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    try:
        return discussion_service.admin_list_discussions(
            db, search=search, status=status_filter, page=page, limit=limit
        )
    except Exception as e:
        raise _server_error(db, "fetch discussions", e)


@router.get("/discussions/{discussion_id}", response_model=AdminDiscussionDetail)
def get_discussion(discussion_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    try:
        return discussion_service.admin_get_discussion(db, discussion_id)
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "fetch discussion", e)


@router.delete("/discussions/{discussion_id}", response_model=DiscussionDeleteResponse)
def delete_discussion(discussion_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    try:
        deleted_messages = discussion_service.admin_delete_discussion(db, discussion_id)
        return DiscussionDeleteResponse(
            message="Discussion deleted successfully",
            deleted_messages=deleted_messages,
        )
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "delete discussion", e)

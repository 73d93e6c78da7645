"""
Admin back-office: cross-user listings, account management and dashboard metrics.

Nothing here is owner-scoped. Metrics without a data source behind them
(growth rates, satisfaction, response time) are reported as None.
"""
import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import NotFoundException, ValidationException
from app.db.models.discussion import Discussion
from app.db.models.enums import DiscussionStatus, SubscriptionStatus, UserRole
from app.db.models.meeting import Meeting
from app.db.models.message import Message
from app.db.models.plan import Plan
from app.db.models.subscription import Subscription
from app.db.models.user import User
from app.db.transaction import transaction
from app.repositories.discussion_repo import AdminDiscussionRepository, count_messages, delete_discussion_rows
from app.schemas.admin import (
    AdminUserCreate,
    AdminUserList,
    AdminUserResponse,
    AdminUserUpdate,
    DashboardStats,
    DiscussionStats,
    InterviewAnalytics,
    PerformanceMetrics,
    PlanStats,
    RecentInterview,
    RevenueAnalytics,
    UserAnalytics,
    UserStats,
)
from app.schemas.subscription import AdminSubscriptionList, AdminSubscriptionResponse
from app.services import auth_service, subscription_service
from app.services.plan_service import get_plan

logger = logging.getLogger(__name__)

REVENUE_WINDOW_DAYS = 30
RECENT_INTERVIEWS = 4


def coerce_price(value) -> float:
    """
    Best-effort numeric price.

    Accepts Decimal, int, float and numeric strings; anything else
    (including NaN and infinities) counts as 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, TypeError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def sum_prices(prices: Iterable) -> float:
    return sum(coerce_price(price) for price in prices)


def _pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


# --- users ------------------------------------------------------------------

def _user_response(user: User) -> AdminUserResponse:
    response = AdminUserResponse.model_validate(user)
    response.subscriptions = [
        subscription_service.to_response(s) for s in user.subscriptions if s.plan is not None
    ]
    return response


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundException("User not found")
    return user


def list_users(db: Session, search: Optional[str] = None, page: int = 1, limit: int = 50) -> AdminUserList:
    query = db.query(User)
    if search:
        term = f"%{search}%"
        query = query.filter(or_(
            User.first_name.ilike(term),
            User.last_name.ilike(term),
            User.email.ilike(term),
        ))

    total = query.count()
    users = (
        query.options(joinedload(User.subscriptions).joinedload(Subscription.plan))
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return AdminUserList(
        users=[_user_response(u) for u in users],
        total=total,
        total_pages=_pages(total, limit),
        current_page=page,
    )


def get_user_detail(db: Session, user_id: int) -> AdminUserResponse:
    db.expire_all()
    return _user_response(_get_user(db, user_id))


def create_user(db: Session, payload: AdminUserCreate) -> AdminUserResponse:
    plan = get_plan(db, payload.subscription.plan_id) if payload.subscription else None

    with transaction(db):
        user = auth_service.create_user(
            db,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
        )
        if plan:
            subscription_service.apply_admin_grant(db, user.id, plan, payload.subscription.duration)

    logger.info(f"Admin created user: user_id={user.id}, role={user.role}, with_plan={plan is not None}")
    return get_user_detail(db, user.id)


def update_user(
    db: Session,
    user_id: int,
    payload: AdminUserUpdate,
    acting_admin_id: Optional[int] = None,
) -> AdminUserResponse:
    if user_id == acting_admin_id and payload.role is not None and payload.role != UserRole.ADMIN.value:
        raise ValidationException("Admins cannot remove their own admin role")

    user = _get_user(db, user_id)
    plan = get_plan(db, payload.subscription.plan_id) if payload.subscription else None

    with transaction(db):
        if payload.email is not None and auth_service.normalize_email(payload.email) != user.email:
            auth_service.ensure_email_available(db, payload.email, exclude_user_id=user.id)
            user.email = auth_service.normalize_email(payload.email)
        if payload.first_name is not None:
            user.first_name = payload.first_name.strip()
        if payload.last_name is not None:
            user.last_name = payload.last_name.strip()
        if payload.role is not None:
            user.role = payload.role
        if plan:
            subscription_service.apply_admin_grant(db, user.id, plan, payload.subscription.duration)

    logger.info(f"Admin updated user: user_id={user_id}")
    return get_user_detail(db, user_id)


def delete_user(db: Session, user_id: int, acting_admin_id: int) -> None:
    """
    Hard-delete a user and everything they own.

    Order: messages and discussions, subscriptions, meetings, then the user.
    """
    if user_id == acting_admin_id:
        raise ValidationException("Admins cannot delete their own account")

    with transaction(db):
        _get_user(db, user_id)
        discussion_ids = AdminDiscussionRepository(db).ids_for_user(user_id)
        deleted_messages = delete_discussion_rows(db, discussion_ids)
        deleted_subscriptions = (
            db.query(Subscription).filter(Subscription.user_id == user_id).delete(synchronize_session=False)
        )
        deleted_meetings = (
            db.query(Meeting).filter(Meeting.user_id == user_id).delete(synchronize_session=False)
        )
        db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    db.expire_all()

    logger.info(
        f"Admin deleted user: user_id={user_id}, discussions={len(discussion_ids)}, "
        f"messages={deleted_messages}, subscriptions={deleted_subscriptions}, meetings={deleted_meetings}"
    )


def set_user_subscription(db: Session, user_id: int, plan_id: int, duration_days: int) -> AdminUserResponse:
    _get_user(db, user_id)
    subscription_service.admin_set_subscription(db, user_id, plan_id, duration_days)
    return get_user_detail(db, user_id)


def cancel_user_subscription(db: Session, user_id: int) -> int:
    _get_user(db, user_id)
    return subscription_service.cancel_subscriptions(db, user_id)


# --- subscriptions ----------------------------------------------------------

def list_subscriptions(
    db: Session,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> AdminSubscriptionList:
    now = datetime.utcnow()
    query = (
        db.query(Subscription)
        .join(User, Subscription.user_id == User.id)
        .join(Plan, Subscription.plan_id == Plan.id)
    )

    if status and status != "all":
        if status == SubscriptionStatus.EXPIRED.value:
            query = query.filter(
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.end_date <= now,
            )
        elif status == SubscriptionStatus.ACTIVE.value:
            query = query.filter(
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.end_date > now,
            )
        else:
            query = query.filter(Subscription.status == status)

    if search:
        term = f"%{search}%"
        query = query.filter(or_(
            User.first_name.ilike(term),
            User.last_name.ilike(term),
            User.email.ilike(term),
        ))

    total = query.count()
    rows = (
        query.order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return AdminSubscriptionList(
        subscriptions=[
            subscription_service.to_response(s, model=AdminSubscriptionResponse, now=now) for s in rows
        ],
        total=total,
        total_pages=_pages(total, limit),
        current_page=page,
    )


# --- metrics ----------------------------------------------------------------

def _count(db: Session, column, *criteria) -> int:
    return db.query(func.count(column)).filter(*criteria).scalar() or 0


def count_premium_users(db: Session) -> int:
    """Distinct users holding an active subscription that has not ended."""
    return (
        db.query(func.count(func.distinct(Subscription.user_id)))
        .filter(
            Subscription.status == SubscriptionStatus.ACTIVE.value,
            Subscription.end_date > datetime.utcnow(),
        )
        .scalar()
        or 0
    )


def get_user_stats(db: Session) -> UserStats:
    total = _count(db, User.id)
    return UserStats(
        total_users=total,
        active_users=total,
        admin_users=_count(db, User.id, User.role == UserRole.ADMIN.value),
        premium_users=count_premium_users(db),
    )


def get_user_analytics(db: Session) -> UserAnalytics:
    now = datetime.utcnow()
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    total = _count(db, User.id)
    return UserAnalytics(
        total_users=total,
        active_users=total,
        admin_users=_count(db, User.id, User.role == UserRole.ADMIN.value),
        new_users_this_month=_count(db, User.id, User.created_at >= start_of_month),
        user_growth=None,
    )


def _completion_rate(completed: int, total: int) -> float:
    return round(completed / total * 100, 1) if total else 0.0


def get_interview_analytics(db: Session) -> InterviewAnalytics:
    total = _count(db, Discussion.id)
    completed = _count(db, Discussion.id, Discussion.status == DiscussionStatus.COMPLETED.value)
    return InterviewAnalytics(
        total_interviews=total,
        completed_interviews=completed,
        success_rate=_completion_rate(completed, total),
        avg_duration=None,
        interview_growth=None,
    )


def _subscription_prices(db: Session, since: Optional[datetime] = None) -> List:
    query = db.query(Plan.price).join(Subscription, Subscription.plan_id == Plan.id)
    if since is not None:
        query = query.filter(Subscription.start_date >= since)
    return [row[0] for row in query.all()]


def get_revenue_analytics(db: Session) -> RevenueAnalytics:
    since = datetime.utcnow() - timedelta(days=REVENUE_WINDOW_DAYS)
    total_revenue = sum_prices(_subscription_prices(db))
    monthly_revenue = sum_prices(_subscription_prices(db, since))
    total_users = _count(db, User.id)
    return RevenueAnalytics(
        total_revenue=round(total_revenue, 2),
        monthly_revenue=round(monthly_revenue, 2),
        avg_revenue_per_user=round(total_revenue / total_users, 2) if total_users else 0.0,
        revenue_growth=None,
    )


def get_dashboard_stats(db: Session) -> DashboardStats:
    interviews = get_interview_analytics(db)
    return DashboardStats(
        user_stats=get_user_analytics(db),
        interview_stats=interviews,
        revenue_stats=get_revenue_analytics(db),
        performance_metrics=PerformanceMetrics(
            completion_rate=interviews.success_rate,
            satisfaction_score=None,
            response_time=None,
        ),
        plan_stats=PlanStats(
            total_plans=_count(db, Plan.id),
            active_plans=_count(db, Plan.id, Plan.is_active.is_(True)),
        ),
        discussion_stats=DiscussionStats(total_discussions=interviews.total_interviews),
    )


def _duration_minutes(db: Session, discussion_id: int) -> int:
    first, last = (
        db.query(func.min(Message.created_at), func.max(Message.created_at))
        .filter(Message.discussion_id == discussion_id)
        .one()
    )
    if not first or not last:
        return 0
    return round((last - first).total_seconds() / 60)


def get_recent_interviews(db: Session, limit: int = RECENT_INTERVIEWS) -> List[RecentInterview]:
    interviews = []
    for discussion in AdminDiscussionRepository(db).recent(limit):
        owner = discussion.user
        interviews.append(RecentInterview(
            id=discussion.id,
            user=owner.full_name if owner else "",
            title=discussion.title,
            status=discussion.status,
            message_count=count_messages(db, discussion.id),
            duration_minutes=_duration_minutes(db, discussion.id),
            date=discussion.created_at,
        ))
    return interviews

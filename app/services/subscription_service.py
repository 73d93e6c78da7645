"""
Subscription lifecycle.

Every path that turns a plan into an active subscription (user subscribe,
admin grant, payment webhook) goes through materialize_subscription so the
"at most one active subscription per user" rule lives in one place.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundException
from app.db.models.enums import SubscriptionStatus
from app.db.models.plan import Plan
from app.db.models.subscription import Subscription
from app.db.models.user import User
from app.db.transaction import transaction
from app.schemas.subscription import SubscriptionResponse
from app.services.plan_service import get_plan

logger = logging.getLogger(__name__)

ACTIVE = SubscriptionStatus.ACTIVE.value
CANCELLED = SubscriptionStatus.CANCELLED.value


def to_response(subscription: Subscription, model=SubscriptionResponse, now: Optional[datetime] = None):
    """Serialize with the read-time status (active rows past end_date read as expired)."""
    response = model.model_validate(subscription)
    response.status = subscription.effective_status(now)
    return response


def _lock_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).with_for_update().first()
    if not user:
        raise NotFoundException("User not found")
    return user


def _active_query(db: Session, user_id: int):
    return db.query(Subscription).filter(
        Subscription.user_id == user_id,
        Subscription.status == ACTIVE,
    )


def materialize_subscription(
    db: Session,
    user_id: int,
    plan: Plan,
    duration_days: Optional[int] = None,
    stripe_session_id: Optional[str] = None,
) -> Subscription:
    """
    Cancel the user's active subscriptions and insert a new active one.

    Caller owns the transaction. The user row is locked first so concurrent
    calls for the same user serialize.
    """
    _lock_user(db, user_id)

    now = datetime.utcnow()
    _active_query(db, user_id).update(
        {Subscription.status: CANCELLED, Subscription.updated_at: now},
        synchronize_session=False,
    )

    subscription = Subscription(
        user_id=user_id,
        plan_id=plan.id,
        start_date=now,
        end_date=now + timedelta(days=duration_days or plan.duration),
        status=ACTIVE,
        stripe_session_id=stripe_session_id,
    )
    db.add(subscription)
    db.flush()
    return subscription


def get_current_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    return (
        _active_query(db, user_id)
        .filter(Subscription.end_date > datetime.utcnow())
        .order_by(Subscription.start_date.desc(), Subscription.id.desc())
        .first()
    )


def list_subscriptions(db: Session, user_id: int) -> List[Subscription]:
    """The user's history, newest first; rows whose plan is gone are skipped."""
    return (
        db.query(Subscription)
        .join(Plan, Subscription.plan_id == Plan.id)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .all()
    )


def subscribe(db: Session, user_id: int, plan_id: int) -> Subscription:
    plan = get_plan(db, plan_id)
    with transaction(db):
        subscription = materialize_subscription(db, user_id, plan)
    db.refresh(subscription)
    logger.info(
        f"Subscription created: subscription_id={subscription.id}, user_id={user_id}, plan_id={plan_id}"
    )
    return subscription


def cancel_subscriptions(db: Session, user_id: int) -> int:
    """Cancel every active subscription of the user; returns how many changed."""
    with transaction(db):
        cancelled = _active_query(db, user_id).update(
            {Subscription.status: CANCELLED, Subscription.updated_at: datetime.utcnow()},
            synchronize_session=False,
        )
    logger.info(f"Subscriptions cancelled: user_id={user_id}, count={cancelled}")
    return cancelled


def apply_admin_grant(db: Session, user_id: int, plan: Plan, duration_days: int) -> Subscription:
    """
    Point the user's active subscription at `plan` for `duration_days` from now,
    creating one if there is none. Caller owns the transaction.
    """
    _lock_user(db, user_id)
    now = datetime.utcnow()

    subscription = (
        _active_query(db, user_id)
        .order_by(Subscription.start_date.desc(), Subscription.id.desc())
        .first()
    )
    if subscription:
        subscription.plan_id = plan.id
        subscription.end_date = now + timedelta(days=duration_days)
    else:
        subscription = Subscription(
            user_id=user_id,
            plan_id=plan.id,
            start_date=now,
            end_date=now + timedelta(days=duration_days),
            status=ACTIVE,
        )
        db.add(subscription)
    db.flush()
    return subscription


def admin_set_subscription(db: Session, user_id: int, plan_id: int, duration_days: int) -> Subscription:
    plan = get_plan(db, plan_id)
    with transaction(db):
        subscription = apply_admin_grant(db, user_id, plan, duration_days)
    db.refresh(subscription)
    logger.info(
        f"Admin set subscription: user_id={user_id}, plan_id={plan_id}, days={duration_days}"
    )
    return subscription


def _find_by_session(db: Session, stripe_session_id: str) -> Optional[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.stripe_session_id == stripe_session_id)
        .first()
    )


def activate_from_payment(db: Session, stripe_session_id: Optional[str], metadata: dict) -> Optional[Subscription]:
    """
    Materialize the subscription paid for in a provider session.

    Idempotent on `stripe_session_id`: a replayed event returns the
    subscription created the first time. Returns None when the metadata does
    not name a known user and plan.
    """
    if not stripe_session_id:
        logger.warning("Payment event without a session id")
        return None

    existing = _find_by_session(db, stripe_session_id)
    if existing:
        logger.info(f"Payment already processed: session_id={stripe_session_id}")
        return existing

    metadata = metadata or {}
    try:
        user_id = int(metadata.get("userId"))
        plan_id = int(metadata.get("planId"))
    except (TypeError, ValueError):
        logger.warning(f"Payment without usable metadata: session_id={stripe_session_id}")
        return None

    plan = db.query(Plan).filter(Plan.id == plan_id).first()
    if not plan:
        logger.warning(f"Payment for unknown plan: plan_id={plan_id}, session_id={stripe_session_id}")
        return None

    try:
        with transaction(db):
            subscription = materialize_subscription(
                db, user_id, plan, stripe_session_id=stripe_session_id
            )
    except NotFoundException:
        logger.warning(f"Payment for unknown user: user_id={user_id}, session_id={stripe_session_id}")
        return None
    except IntegrityError:
        # Concurrent delivery of the same event won the insert
        logger.info(f"Payment processed concurrently: session_id={stripe_session_id}")
        return _find_by_session(db, stripe_session_id)

    db.refresh(subscription)
    logger.info(
        f"Subscription activated from payment: subscription_id={subscription.id}, "
        f"user_id={user_id}, plan_id={plan_id}"
    )
    return subscription

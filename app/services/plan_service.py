"""
Plan catalogue: public listing plus admin CRUD.
"""
import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictException, NotFoundException
from app.db.models.plan import Plan
from app.db.models.subscription import Subscription
from app.db.transaction import transaction
from app.schemas.plan import PlanCreate, PlanUpdate

logger = logging.getLogger(__name__)


def get_public_plans(db: Session) -> List[Plan]:
    """Active plans, cheapest first."""
    return (
        db.query(Plan)
        .filter(Plan.is_active.is_(True))
        .order_by(Plan.price.asc(), Plan.id.asc())
        .all()
    )


def get_plan(db: Session, plan_id: int) -> Plan:
    plan = db.query(Plan).filter(Plan.id == plan_id).first()
    if not plan:
        raise NotFoundException("Plan not found")
    return plan


def list_all_plans(db: Session) -> List[Plan]:
    return db.query(Plan).order_by(Plan.price.asc(), Plan.id.asc()).all()


def create_plan(db: Session, payload: PlanCreate) -> Plan:
    plan = Plan(**payload.model_dump())
    with transaction(db):
        db.add(plan)
    db.refresh(plan)
    logger.info(f"Plan created: plan_id={plan.id}, name={plan.name}")
    return plan


def update_plan(db: Session, plan_id: int, payload: PlanUpdate) -> Plan:
    with transaction(db):
        plan = get_plan(db, plan_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is None and field != "description":
                continue
            setattr(plan, field, value)
    db.refresh(plan)
    logger.info(f"Plan updated: plan_id={plan_id}")
    return plan


def delete_plan(db: Session, plan_id: int) -> None:
    """
    Remove a plan that no subscription references.

    Referenced plans are kept so subscription history stays joinable;
    deactivate them instead.
    """
    with transaction(db):
        plan = get_plan(db, plan_id)
        references = (
            db.query(func.count(Subscription.id))
            .filter(Subscription.plan_id == plan_id)
            .scalar()
        )
        if references:
            raise ConflictException(
                f"Plan is referenced by {references} subscription(s); deactivate it instead"
            )
        db.delete(plan)
    logger.info(f"Plan deleted: plan_id={plan_id}")

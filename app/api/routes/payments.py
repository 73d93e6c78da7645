"""
Stripe payment endpoints and webhook.

The webhook is the only path that turns a payment into a subscription; it
shares materialize_subscription with the subscribe endpoint.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.auth_dependency import get_current_user, get_db
from app.core.config import Settings, get_settings
from app.core.exceptions import AppException, NotFoundException, ProviderNotConfiguredException
from app.db.models.user import User
from app.schemas.billing import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    WebhookAck,
)
from app.services import plan_service, stripe_service, subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])

HANDLED_EVENTS = ("checkout.session.completed", "payment_intent.succeeded")


def _field(obj, key: str):
    """Read a key from a Stripe object or plain dict; missing keys read as None."""
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


@router.post("/create-checkout-session", response_model=CreateCheckoutSessionResponse)
def create_checkout_session(
    payload: CreateCheckoutSessionRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Create a Stripe Checkout session for a plan.

    Redirect URLs default to the calling frontend's origin.
    """
    try:
        plan = plan_service.get_plan(db, payload.plan_id)
        result = stripe_service.create_checkout_session(
            user,
            plan,
            origin=request.headers.get("origin"),
            success_url=payload.success_url,
            cancel_url=payload.cancel_url,
            settings=settings,
        )
        return CreateCheckoutSessionResponse(**result)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        logger.error(f"Failed to create checkout session: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session"
        )


@router.post("/create-intent", response_model=CreatePaymentIntentResponse)
def create_payment_intent(
    payload: CreatePaymentIntentRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        if not settings.stripe_enabled:
            raise ProviderNotConfiguredException(stripe_service.NOT_CONFIGURED)
        plan = plan_service.get_plan(db, payload.plan_id)
        client_secret = stripe_service.create_payment_intent(user, plan, payload.amount, settings=settings)
        return CreatePaymentIntentResponse(client_secret=client_secret)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        logger.error(f"Failed to create payment intent: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create payment"
        )


def apply_webhook_event(db: Session, event) -> None:
    """Materialize the subscription a verified payment event pays for; other events are ignored."""
    event_type = _field(event, "type")
    if event_type not in HANDLED_EVENTS:
        logger.info(f"Ignoring webhook event: {event_type}")
        return

    obj = _field(_field(event, "data"), "object")
    if event_type == "checkout.session.completed":
        payment_status = _field(obj, "payment_status")
        if payment_status not in (None, "paid", "no_payment_required"):
            logger.info(f"Checkout completed without payment: session_id={_field(obj, 'id')}, status={payment_status}")
            return

    metadata = _field(obj, "metadata") or {}
    subscription_service.activate_from_payment(
        db,
        stripe_session_id=_field(obj, "id"),
        metadata={
            "userId": _field(metadata, "userId"),
            "planId": _field(metadata, "planId"),
        },
    )


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    payload = await request.body()
    event = stripe_service.verify_webhook(payload, stripe_signature, settings)
    # Row locks and driver calls stay off the event loop
    await run_in_threadpool(apply_webhook_event, db, event)
    return WebhookAck()


@router.get("/session/{session_id}")
def get_checkout_session(
    session_id: str = Path(..., min_length=1, max_length=255),
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    """Payment status of one of the caller's checkout sessions (used by the success page)."""
    session = stripe_service.retrieve_session(session_id, settings)
    metadata = _field(session, "metadata") or {}
    if str(_field(metadata, "userId")) != str(user.id):
        raise NotFoundException("Checkout session not found")

    return {
        "id": _field(session, "id"),
        "status": _field(session, "status"),
        "paymentStatus": _field(session, "payment_status"),
        "amountTotal": _field(session, "amount_total"),
        "currency": _field(session, "currency"),
        "planId": _field(metadata, "planId"),
    }

"""
Stripe service for checkout sessions, payment intents, and webhook verification.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import stripe

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    ProviderNotConfiguredException,
    UpstreamServiceException,
    ValidationException,
)

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Payment provider not configured"


def _configure(settings: Optional[Settings] = None) -> Settings:
    settings = settings or get_settings()
    if not settings.stripe_enabled:
        logger.warning("STRIPE_SECRET_KEY not configured - Stripe features disabled")
        raise ProviderNotConfiguredException(NOT_CONFIGURED)
    stripe.api_key = settings.STRIPE_SECRET_KEY
    return settings


def to_cents(price) -> int:
    """Plan price in the smallest currency unit, rounded half up."""
    return int((Decimal(str(price)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _metadata(user_id: int, plan_id: int) -> dict:
    return {"planId": str(plan_id), "userId": str(user_id)}


def create_checkout_session(
    user,
    plan,
    origin: Optional[str] = None,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> dict:
    """
    Create a one-off Stripe Checkout session for a plan.

    Args:
        user: Paying user
        plan: Plan being purchased; its price is charged inline via price_data
        origin: Frontend origin used to build default redirect URLs
        success_url: Override for the post-payment redirect
        cancel_url: Override for the cancel redirect

    Returns:
        Dictionary with 'session_id' and 'url'
    """
    settings = _configure(settings)
    base = (origin or settings.FRONTEND_URL).rstrip("/")

    if not success_url:
        success_url = f"{base}/payment/success?session_id={{CHECKOUT_SESSION_ID}}"
    if not cancel_url:
        cancel_url = f"{base}/payment?cancelled=1"

    try:
        session = stripe.checkout.Session.create(
            customer_email=user.email,
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": settings.STRIPE_CURRENCY,
                    "product_data": {
                        "name": plan.name,
                        "description": plan.description or plan.name,
                    },
                    "unit_amount": to_cents(plan.price),
                },
                "quantity": 1,
            }],
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=_metadata(user.id, plan.id),
        )

        logger.info(f"Created checkout session for user_id={user.id}, plan_id={plan.id}, session_id={session.id}")
        return {"session_id": session.id, "url": session.url}

    except stripe.StripeError as e:
        logger.error(f"Stripe error creating checkout session: {e}")
        raise UpstreamServiceException(f"Failed to create checkout session: {e.user_message or str(e)}")


def create_payment_intent(user, plan, amount: int, settings: Optional[Settings] = None) -> str:
    """
    Create a PaymentIntent for exactly the plan price.

    Returns:
        The intent's client secret

    Raises:
        ValidationException: If the amount is not positive or differs from the plan price
    """
    settings = _configure(settings)

    if amount is None or amount <= 0:
        raise ValidationException("Payment amount must be greater than 0")
    if amount != to_cents(plan.price):
        raise ValidationException("Payment amount does not match the plan price")

    try:
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency=settings.STRIPE_CURRENCY,
            receipt_email=user.email,
            metadata=_metadata(user.id, plan.id),
            automatic_payment_methods={"enabled": True},
        )
        logger.info(f"Created payment intent for user_id={user.id}, plan_id={plan.id}, intent_id={intent.id}")
        return intent.client_secret

    except stripe.StripeError as e:
        logger.error(f"Stripe error creating payment intent: {e}")
        raise UpstreamServiceException(f"Failed to create payment: {e.user_message or str(e)}")


def retrieve_session(session_id: str, settings: Optional[Settings] = None):
    _configure(settings)
    try:
        return stripe.checkout.Session.retrieve(session_id)
    except stripe.InvalidRequestError as e:
        logger.info(f"Checkout session lookup failed: session_id={session_id}: {e}")
        raise ValidationException("Invalid checkout session")
    except stripe.StripeError as e:
        logger.error(f"Stripe error retrieving session: {e}")
        raise UpstreamServiceException("Failed to retrieve checkout session")


def verify_webhook(request_body: bytes, signature: Optional[str], settings: Optional[Settings] = None):
    """
    Verify and parse Stripe webhook event.

    Args:
        request_body: Raw request body bytes
        signature: Stripe-Signature header value

    Returns:
        Parsed event

    Raises:
        ValidationException: If the payload or signature is invalid
    """
    settings = _configure(settings)
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.warning("STRIPE_WEBHOOK_SECRET not configured")
        raise ProviderNotConfiguredException(NOT_CONFIGURED)
    if not signature:
        raise ValidationException("Missing Stripe-Signature header")

    try:
        event = stripe.Webhook.construct_event(
            request_body, signature, settings.STRIPE_WEBHOOK_SECRET
        )
        logger.info(f"Verified webhook event: {event['type']}, id={event['id']}")
        return event
    except ValueError as e:
        logger.error(f"Invalid webhook payload: {e}")
        raise ValidationException("Invalid webhook payload")
    except stripe.SignatureVerificationError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise ValidationException("Invalid signature")

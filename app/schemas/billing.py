"""
Pydantic schemas for payment endpoints.
"""
from typing import Optional
from pydantic import Field

from app.schemas.common import CamelModel


class CreateCheckoutSessionRequest(CamelModel):
    """Request schema for creating checkout session."""
    plan_id: int = Field(..., description="Plan to purchase")
    success_url: Optional[str] = Field(None, description="Override for the post-payment redirect")
    cancel_url: Optional[str] = Field(None, description="Override for the cancel redirect")

    model_config = CamelModel.model_config | {
        "json_schema_extra": {"example": {"planId": 2}}
    }


class CreateCheckoutSessionResponse(CamelModel):
    """Response schema for checkout session creation."""
    session_id: str = Field(..., description="Stripe checkout session ID")
    url: Optional[str] = Field(None, description="Stripe checkout session URL")


class CreatePaymentIntentRequest(CamelModel):
    plan_id: int
    amount: int = Field(..., description="Amount in the smallest currency unit (cents)")


class CreatePaymentIntentResponse(CamelModel):
    client_secret: str


class WebhookAck(CamelModel):
    received: bool = True

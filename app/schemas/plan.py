"""
Pydantic schemas for plan endpoints.
"""
from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal

from pydantic import Field, field_serializer

from app.schemas.common import CamelModel


class PlanBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    duration: int = Field(..., gt=0, description="Duration in days")
    features: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class PlanCreate(PlanBase):
    pass


class PlanUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    duration: Optional[int] = Field(default=None, gt=0)
    features: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class PlanResponse(PlanBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)


class PlanBrief(CamelModel):
    """Plan fields joined onto subscriptions."""
    id: int
    name: str
    price: Decimal
    duration: Optional[int] = None
    features: Dict[str, Any] = Field(default_factory=dict)

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)

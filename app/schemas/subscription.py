"""
Pydantic schemas for subscription endpoints.
"""
from typing import List, Optional
from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.plan import PlanBrief


class SubscribeRequest(CamelModel):
    plan_id: int


class SubscriptionResponse(CamelModel):
    id: int
    user_id: int
    plan_id: int
    start_date: datetime
    end_date: datetime
    status: str
    plan: Optional[PlanBrief] = None
    created_at: Optional[datetime] = None


class CancelResponse(CamelModel):
    message: str
    cancelled: int


class AdminSubscriptionGrant(CamelModel):
    plan_id: int
    duration: int = Field(..., gt=0, description="Duration in days")


class SubscriptionOwner(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str


class AdminSubscriptionResponse(SubscriptionResponse):
    user: Optional[SubscriptionOwner] = None


class AdminSubscriptionList(CamelModel):
    subscriptions: List[AdminSubscriptionResponse]
    total: int
    total_pages: int
    current_page: int

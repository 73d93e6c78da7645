"""
Pydantic schemas for the admin back-office.
"""
from typing import List, Literal, Optional
from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from app.schemas.auth import validate_password_bytes
from app.schemas.common import CamelModel
from app.schemas.subscription import AdminSubscriptionGrant, SubscriptionResponse


class AdminUserCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str
    role: Literal["user", "admin"] = "user"
    subscription: Optional[AdminSubscriptionGrant] = None

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        return validate_password_bytes(v)


class AdminUserUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[Literal["user", "admin"]] = None
    subscription: Optional[AdminSubscriptionGrant] = None


class AdminUserResponse(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None
    subscriptions: List[SubscriptionResponse] = Field(default_factory=list)


class AdminUserList(CamelModel):
    users: List[AdminUserResponse]
    total: int
    total_pages: int
    current_page: int


class AdminUserMutationResponse(CamelModel):
    message: str
    user: AdminUserResponse


class UserStats(CamelModel):
    total_users: int
    active_users: int
    admin_users: int
    premium_users: int


class UserAnalytics(CamelModel):
    total_users: int
    active_users: int
    admin_users: int
    new_users_this_month: int
    user_growth: Optional[float] = None


class InterviewAnalytics(CamelModel):
    total_interviews: int
    completed_interviews: int
    success_rate: float
    avg_duration: Optional[float] = None
    interview_growth: Optional[float] = None


class RevenueAnalytics(CamelModel):
    total_revenue: float
    monthly_revenue: float
    avg_revenue_per_user: float
    revenue_growth: Optional[float] = None


class PerformanceMetrics(CamelModel):
    completion_rate: float
    satisfaction_score: Optional[float] = None
    response_time: Optional[float] = None


class PlanStats(CamelModel):
    total_plans: int
    active_plans: int


class DiscussionStats(CamelModel):
    total_discussions: int


class DashboardStats(CamelModel):
    user_stats: UserAnalytics
    interview_stats: InterviewAnalytics
    revenue_stats: RevenueAnalytics
    performance_metrics: PerformanceMetrics
    plan_stats: PlanStats
    discussion_stats: DiscussionStats


class RecentInterview(CamelModel):
    id: int
    user: str
    title: str
    status: str
    message_count: int
    duration_minutes: int
    date: datetime

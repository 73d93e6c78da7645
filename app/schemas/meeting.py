"""
Pydantic schemas for meeting endpoints.
"""
from typing import Literal, Optional
from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel

MeetingTypeField = Literal["technical", "behavioral", "hr"]
MeetingStatusField = Literal["scheduled", "completed", "cancelled"]


class MeetingCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    date: datetime
    duration: int = Field(..., gt=0, description="Duration in minutes")
    type: MeetingTypeField


class MeetingUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, gt=0)
    type: Optional[MeetingTypeField] = None
    status: Optional[MeetingStatusField] = None


class MeetingResponse(CamelModel):
    id: int
    user_id: int
    title: str
    date: datetime
    duration: int
    type: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

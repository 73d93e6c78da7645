"""
Pydantic schemas for discussion and message endpoints.
"""
from typing import List, Literal, Optional
from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.user import CVAnalysis


class MessageCreate(CamelModel):
    role: Literal["user", "ai"]
    type: Literal["text", "vocal"] = "text"
    content: str = Field(..., min_length=1)
    audio_url: Optional[str] = Field(default=None, max_length=500)
    label: Optional[str] = Field(default=None, max_length=255)


class MessageResponse(CamelModel):
    id: int
    discussion_id: int
    role: str
    type: str
    content: str
    audio_url: Optional[str] = None
    label: Optional[str] = None
    created_at: datetime


class DiscussionCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    cv_analysis: Optional[CVAnalysis] = None


class DiscussionRename(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)


class DiscussionStatusUpdate(CamelModel):
    status: Literal["active", "archived", "completed"]


class CoachReplyRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=8000)


class CoachReplyResponse(CamelModel):
    user_message: MessageResponse
    ai_message: MessageResponse


class DiscussionSummary(CamelModel):
    id: int
    user_id: int
    title: str
    status: str
    last_message_at: datetime
    created_at: datetime
    updated_at: datetime
    last_message: Optional[MessageResponse] = None


class DiscussionDetail(CamelModel):
    id: int
    user_id: int
    title: str
    status: str
    last_message_at: datetime
    created_at: datetime
    updated_at: datetime
    cv_analysis: CVAnalysis
    messages: List[MessageResponse] = Field(default_factory=list)


class DiscussionDeleteResponse(CamelModel):
    message: str
    success: bool = True
    deleted_messages: int


class DiscussionOwner(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str


class AdminDiscussionSummary(DiscussionSummary):
    user: Optional[DiscussionOwner] = None
    message_count: int = 0


class AdminDiscussionDetail(DiscussionDetail):
    user: Optional[DiscussionOwner] = None


class AdminDiscussionList(CamelModel):
    discussions: List[AdminDiscussionSummary]
    total: int
    total_pages: int
    current_page: int
    limit: int

"""
Pydantic schemas for profile and CV endpoints.
"""
from typing import Any, List, Optional
from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from app.schemas.auth import validate_password_bytes
from app.schemas.common import CamelModel


class UserProfile(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None


class ProfileUpdateRequest(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone_number: Optional[str] = Field(default=None, max_length=20)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_bytes(v)


class CVAnalysis(CamelModel):
    """Structured CV analysis. Entries are free-form JSON (strings or objects)."""
    skills: List[Any] = Field(default_factory=list)
    experience: List[Any] = Field(default_factory=list)
    education: List[Any] = Field(default_factory=list)
    summary: str = ""

    @field_validator("skills", "experience", "education", mode="before")
    @classmethod
    def none_to_empty_list(cls, v):
        return [] if v is None else v

    @field_validator("summary", mode="before")
    @classmethod
    def none_to_empty_summary(cls, v):
        return "" if v is None else v


class CVAnalyzeRequest(CamelModel):
    cv_text: str = Field(..., min_length=20, max_length=50000, description="Raw CV text to analyze")

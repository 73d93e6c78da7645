"""
Pydantic schemas for authentication endpoints.
"""
from typing import Optional
from pydantic import EmailStr, Field, field_validator

from app.schemas.common import CamelModel


def validate_password_bytes(v: str) -> str:
    """bcrypt only hashes 72 bytes; reject anything longer instead of truncating."""
    password_bytes = v.encode("utf-8")
    if len(password_bytes) > 72:
        raise ValueError("Password must be 72 bytes or fewer")
    if len(password_bytes) < 8:
        raise ValueError("Password must be at least 8 characters")
    return v


class RegisterRequest(CamelModel):
    """Request schema for user registration."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str
    phone_number: Optional[str] = Field(default=None, max_length=20)

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        return validate_password_bytes(v)

    model_config = CamelModel.model_config | {
        "json_schema_extra": {
            "example": {
                "firstName": "Jane",
                "lastName": "Doe",
                "email": "jane.doe@example.com",
                "password": "SecurePass123",
            }
        }
    }


class LoginRequest(CamelModel):
    """Request schema for user login."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthUser(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    role: str


class LoginResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    user: AuthUser


class RegisterResponse(CamelModel):
    message: str
    user: AuthUser

"""
User model schemas for authentication and profile management.
"""
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime
from uuid import UUID

MAX_NAME_LENGTH = 100
MAX_PASSWORD_LENGTH = 128


class CurrentUser(BaseModel):
    """Authenticated user resolved from a validated access token."""
    id: UUID
    email: Optional[str] = None
    role: str = "authenticated"
    display_name: Optional[str] = None
    access_token: Optional[str] = Field(None, exclude=True, repr=False)

    @property
    def user_id(self) -> str:
        return str(self.id)


class UserRegister(BaseModel):
    """Sign-up request."""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=MAX_PASSWORD_LENGTH)
    display_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)

    @field_validator('display_name')
    @classmethod
    def validate_display_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Display name cannot be empty")
        return v


class UserLogin(BaseModel):
    """User login model with validation."""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)

    @field_validator('password')
    @classmethod
    def validate_password_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Password cannot be empty")
        return v


class TokenRefresh(BaseModel):
    """Token refresh request model."""
    refresh_token: str = Field(..., min_length=1)

    @field_validator('refresh_token')
    @classmethod
    def validate_refresh_token(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Refresh token cannot be empty")
        return v.strip()


class UserResponse(BaseModel):
    """Public view of an auth user."""
    id: UUID
    email: Optional[str] = None
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    """Session returned by register, login and refresh."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: Optional[UserResponse] = None
    message: Optional[str] = None


class ProfileResponse(BaseModel):
    """Settings page profile: profile row, credit balance and admin flag."""
    id: UUID
    email: Optional[str] = None
    display_name: Optional[str] = None
    credits: int = 0
    is_admin: bool = False


class ProfileUpdate(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)

    @field_validator('display_name')
    @classmethod
    def validate_display_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Display name cannot be empty")
        return v


class SupportInfo(BaseModel):
    """Help and support links shown on the settings page."""
    documentation_url: str
    support_email: str
    bug_report_url: str
    privacy_policy_path: str = "/privacy-policy"
    extra: Dict[str, Any] = Field(default_factory=dict)

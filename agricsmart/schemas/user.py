# ==============================================================================
# USER SCHEMAS - Authentication, Profile & Administration
# ==============================================================================
# Request/Response schemas for user management
# ==============================================================================

from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import EmailStr, Field, field_validator

from agricsmart.schemas.base import BaseSchema, GeoPoint, TimestampSchema

RoleName = Literal["Admin", "Seller", "Buyer", "Educator"]
SelfRegistrableRole = Literal["Seller", "Buyer", "Educator"]


class UserCreate(BaseSchema):
    """Schema for user registration."""

    username: str = Field(
        ...,
        min_length=3,
        max_length=50,
        description="Public display handle",
    )
    email: EmailStr = Field(
        ...,
        description="User email address",
        examples=["farmer@example.com"],
    )
    phone: Optional[str] = Field(
        None,
        pattern=r"^\+?[0-9]{7,15}$",
        description="Phone number (used for MoMo payments)",
    )
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="User password (min 8 chars)",
    )
    role: SelfRegistrableRole = Field(
        "Buyer",
        description="Account role; Admin accounts cannot self-register",
    )
    full_name: Optional[str] = Field(None, max_length=255)
    location: Optional[GeoPoint] = None

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        """Require at least one letter and one digit."""
        if not any(c.isalpha() for c in v):
            raise ValueError("Password must contain at least one letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        return v


class UserUpdate(BaseSchema):
    """Schema for updating the caller's own profile."""

    username: Optional[str] = Field(None, min_length=3, max_length=50)
    phone: Optional[str] = Field(None, pattern=r"^\+?[0-9]{7,15}$")
    full_name: Optional[str] = Field(None, max_length=255)
    profile_pic: Optional[str] = Field(None, max_length=500)
    location: Optional[GeoPoint] = None


class UserResponse(TimestampSchema):
    """Schema for user response (public profile)."""

    username: str
    email: EmailStr
    phone: Optional[str] = None
    role: RoleName
    full_name: Optional[str] = None
    profile_pic: Optional[str] = None
    location: Optional[GeoPoint] = None
    is_active: bool = True


class UserLogin(BaseSchema):
    """Schema for user login request."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


class TokenResponse(BaseSchema):
    """Schema for authentication token response."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiry in seconds")
    user: Optional[UserResponse] = None


class RefreshTokenRequest(BaseSchema):
    refresh_token: str = Field(..., description="JWT refresh token")


# ==============================================================================
# ADMINISTRATION
# ==============================================================================

class RoleUpdate(BaseSchema):
    role: RoleName = Field(..., description="New role for the user")


class UserStatusUpdate(BaseSchema):
    is_active: bool = Field(..., description="Activate or deactivate the account")


class PlatformStats(BaseSchema):
    """Aggregate platform figures for the admin dashboard."""

    users_by_role: Dict[str, int] = Field(default_factory=dict)
    total_users: int = 0
    active_products: int = 0
    total_orders: int = 0
    orders_by_status: Dict[str, int] = Field(default_factory=dict)
    completed_payment_volume: Dict[str, float] = Field(
        default_factory=dict,
        description="Sum of completed payments per currency",
    )
    published_courses: int = 0

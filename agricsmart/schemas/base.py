# ==============================================================================
# BASE SCHEMAS - Common Schema Patterns
# ==============================================================================
# Foundation schemas for API responses, pagination and GeoJSON points
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Type variable for generic response types
T = TypeVar("T")


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All API schemas inherit from this class to ensure consistent
    serialization behavior.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
        arbitrary_types_allowed=True,
    )


class TimestampSchema(BaseSchema):
    """Schema with the id and timestamps every stored document carries."""

    id: str = Field(..., description="Document identifier")
    created_at: Optional[datetime] = Field(
        None,
        description="Record creation timestamp"
    )
    updated_at: Optional[datetime] = Field(
        None,
        description="Last update timestamp"
    )


def validate_coordinates(value: List[float]) -> List[float]:
    """Check a ``[lng, lat]`` pair is on the globe."""
    if len(value) != 2:
        raise ValueError("coordinates must be [longitude, latitude]")
    lng, lat = value
    if not -180 <= lng <= 180:
        raise ValueError("longitude must be between -180 and 180")
    if not -90 <= lat <= 90:
        raise ValueError("latitude must be between -90 and 90")
    return [float(lng), float(lat)]


class GeoPoint(BaseSchema):
    """GeoJSON point. Coordinates are ``[longitude, latitude]``."""

    type: Literal["Point"] = Field("Point", description="GeoJSON geometry type")
    coordinates: List[float] = Field(
        ...,
        description="[longitude, latitude]",
        examples=[[-0.187, 5.6037]],
    )

    @field_validator("coordinates")
    @classmethod
    def check_coordinates(cls, v: List[float]) -> List[float]:
        return validate_coordinates(v)


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response wrapper.

    Attributes:
        items: List of result items
        total: Total number of matching items
        page: Current page number (1-indexed)
        page_size: Items per page
        pages: Total number of pages
    """

    items: List[T] = Field(
        default_factory=list,
        description="List of items"
    )
    total: int = Field(..., description="Total number of items")
    page: int = Field(..., ge=1, description="Current page number")
    page_size: int = Field(..., ge=1, le=100, description="Items per page")
    pages: int = Field(..., ge=0, description="Total number of pages")
    has_next: bool = Field(False, description="Whether a next page exists")
    has_prev: bool = Field(False, description="Whether a previous page exists")


class APIResponse(BaseModel, Generic[T]):
    """
    Standard success envelope.

    Errors never pass through this model; they are rendered from
    ``AppException.to_dict`` by the global exception handler.
    """

    success: bool = Field(True, description="Whether the request was successful")
    message: Optional[str] = Field(None, description="Status message")
    data: Optional[T] = Field(None, description="Response data")

    @classmethod
    def ok(
        cls,
        data: T,
        message: Optional[str] = None,
    ) -> "APIResponse[T]":
        """Create a successful response."""
        return cls(success=True, data=data, message=message)


class MessageResponse(BaseSchema):
    """Response for operations that only report an outcome."""

    success: bool = True
    message: str


class HealthResponse(BaseSchema):
    """Health check response schema."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="Application version")
    database: str = Field(..., description="Database connection status")
    details: Optional[dict[str, Any]] = Field(None, description="Extra diagnostics")

# ==============================================================================
# SCHEMAS PACKAGE
# ==============================================================================
# Pydantic v2 request/response models
# ==============================================================================

from agricsmart.schemas.base import (
    APIResponse,
    BaseSchema,
    GeoPoint,
    HealthResponse,
    MessageResponse,
    PaginatedResponse,
    TimestampSchema,
)

__all__ = [
    "APIResponse",
    "BaseSchema",
    "GeoPoint",
    "HealthResponse",
    "MessageResponse",
    "PaginatedResponse",
    "TimestampSchema",
]

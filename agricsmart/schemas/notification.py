# ==============================================================================
# NOTIFICATION SCHEMAS - In-App Notifications
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from agricsmart.schemas.base import BaseSchema, TimestampSchema

NotificationTypeName = Literal["message", "order", "payment", "system"]


class NotificationCreate(BaseSchema):
    """Schema for creating a notification."""

    user_id: str = Field(..., description="Recipient")
    type: NotificationTypeName = "system"
    content: str = Field(..., min_length=1, max_length=1000)
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationResponse(TimestampSchema):
    user_id: str
    type: NotificationTypeName
    content: str
    data: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    event_id: Optional[str] = None


class NotificationListResponse(BaseSchema):
    notifications: List[NotificationResponse] = Field(default_factory=list)
    total: int = 0
    unread_count: int = 0


class MarkAllReadResponse(BaseSchema):
    updated: int = Field(..., description="Notifications marked as read")

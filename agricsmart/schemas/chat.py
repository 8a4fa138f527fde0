# ==============================================================================
# CHAT SCHEMAS - Participant Chats & Messages
# ==============================================================================
# Request/Response schemas for chats with embedded messages
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from agricsmart.schemas.base import BaseSchema, TimestampSchema


class ChatCreate(BaseSchema):
    """Open a chat with one or more other users. The caller is added."""

    participant_ids: List[str] = Field(
        ...,
        min_length=1,
        description="Other participants",
    )
    group_chat: bool = Field(False, description="More than two participants")


class ChatMessageCreate(BaseSchema):
    """Schema for sending a message."""

    content: str = Field(
        ...,
        min_length=1,
        max_length=5000,
        description="Message text",
    )
    media: List[str] = Field(default_factory=list, description="Attachment URLs")


class ChatMessageResponse(BaseSchema):
    """Embedded message."""

    id: str
    chat_id: Optional[str] = None
    sender: str
    receivers: List[str] = Field(default_factory=list)
    content: str
    media: List[str] = Field(default_factory=list)
    delivered: bool = False
    read: bool = False
    created_at: Optional[datetime] = None


class MessageStatusUpdate(BaseSchema):
    status: Literal["delivered", "read"]


class ChatResponse(TimestampSchema):
    """Chat summary (messages are fetched separately)."""

    users: List[str]
    group_chat: bool = False
    message_count: int = 0
    last_message: Optional[ChatMessageResponse] = None

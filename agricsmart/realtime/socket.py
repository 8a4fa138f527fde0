# ==============================================================================
# CHAT SOCKET - WebSocket Endpoint
# ==============================================================================
# JSON frames {"event": ..., "data": {...}} in both directions.
# Connect with ws://host/ws/chat?token=<access token>
# ==============================================================================

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from pydantic import Field, ValidationError as PydanticValidationError

from agricsmart.core.constants import ChatEvents
from agricsmart.core.exceptions import AppException, ValidationError
from agricsmart.core.security import verify_access_token
from agricsmart.realtime.manager import ConnectionManager
from agricsmart.schemas.base import BaseSchema
from agricsmart.schemas.chat import ChatMessageCreate
from agricsmart.services.chat_service import ChatService
from agricsmart.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


# ==============================================================================
# FRAME PAYLOADS
# ==============================================================================

class ChatRef(BaseSchema):
    chat_id: str = Field(..., alias="chatId", min_length=1)


class SendMessageData(ChatRef):
    content: str = Field(..., min_length=1, max_length=5000)
    media: List[str] = Field(default_factory=list)


class MessageStatusData(ChatRef):
    message_id: str = Field(..., alias="messageId", min_length=1)
    status: str


# ==============================================================================
# SESSION
# ==============================================================================

class ChatSocketSession:
    """Handles the frames of one authenticated socket."""

    def __init__(
        self,
        websocket: WebSocket,
        user_id: str,
        chats: ChatService,
        manager: ConnectionManager,
    ) -> None:
        self.websocket = websocket
        self.user_id = user_id
        self.chats = chats
        self.manager = manager
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[None]]] = {
            ChatEvents.JOIN_CHAT: self.on_join,
            ChatEvents.LEAVE_CHAT: self.on_leave,
            ChatEvents.SEND_MESSAGE: self.on_send_message,
            ChatEvents.TYPING: self.on_typing,
            ChatEvents.STOPPED_TYPING: self.on_stopped_typing,
            ChatEvents.UPDATE_MESSAGE_STATUS: self.on_update_status,
        }

    async def send_error(self, message: str, event: Optional[str] = None) -> None:
        await self.manager.send(
            self.websocket,
            {"event": ChatEvents.ERROR, "data": {"message": message, "event": event}}
        )

    async def on_join(self, data: Dict[str, Any]) -> None:
        ref = ChatRef.model_validate(data)
        await self.chats.get_participant_chat(ref.chat_id, self.user_id)
        self.manager.join(ref.chat_id, self.websocket)
        await self.manager.send(
            self.websocket,
            {"event": ChatEvents.JOINED, "data": {"chat_id": ref.chat_id}},
        )

    async def on_leave(self, data: Dict[str, Any]) -> None:
        ref = ChatRef.model_validate(data)
        self.manager.leave(ref.chat_id, self.websocket)

    async def on_send_message(self, data: Dict[str, Any]) -> None:
        payload = SendMessageData.model_validate(data)
        await self.chats.send_message(
            payload.chat_id,
            self.user_id,
            ChatMessageCreate(content=payload.content, media=payload.media),
        )

    async def _relay_typing(self, data: Dict[str, Any], event: str) -> None:
        ref = ChatRef.model_validate(data)
        await self.chats.get_participant_chat(ref.chat_id, self.user_id)
        await self.manager.emit(
            ref.chat_id,
            event,
            {"chat_id": ref.chat_id, "user_id": self.user_id},
        )

    async def on_typing(self, data: Dict[str, Any]) -> None:
        await self._relay_typing(data, ChatEvents.TYPING_INDICATOR)

    async def on_stopped_typing(self, data: Dict[str, Any]) -> None:
        await self._relay_typing(data, ChatEvents.STOPPED_TYPING)

    async def on_update_status(self, data: Dict[str, Any]) -> None:
        payload = MessageStatusData.model_validate(data)
        await self.chats.update_message_status(
            payload.chat_id,
            payload.message_id,
            self.user_id,
            payload.status,
        )

    async def handle(self, raw: str) -> None:
        """Dispatch one text frame; problems are answered with an error frame."""
        event: Optional[str] = None
        try:
            frame = json.loads(raw)
            if not isinstance(frame, dict):
                raise ValidationError(message="Frame must be a JSON object")
            event = frame.get("event")
            handler = self._handlers.get(event)
            if handler is None:
                raise ValidationError(message=f"Unknown event: {event}")
            data = frame.get("data") or {}
            if not isinstance(data, dict):
                raise ValidationError(message="Frame data must be a JSON object")
            await handler(data)
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON", event)
        except PydanticValidationError as e:
            await self.send_error(f"Invalid payload: {e.errors()[0]['msg']}", event)
        except AppException as e:
            await self.send_error(e.message, event)


@router.websocket("/ws/chat")
async def chat_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
) -> None:
    """Authenticated realtime chat channel."""
    adapter = websocket.app.state.database
    manager: ConnectionManager = websocket.app.state.realtime

    try:
        payload = verify_access_token(token or "")
        user = await UserService(adapter).get_active_user(payload["sub"])
    except AppException as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    await websocket.accept()
    session = ChatSocketSession(
        websocket,
        user["id"],
        ChatService(adapter, manager),
        manager,
    )
    logger.info(f"Socket connected for user {user['id']}")

    try:
        while True:
            await session.handle(await websocket.receive_text())
    except WebSocketDisconnect:
        logger.info(f"Socket disconnected for user {user['id']}")
    finally:
        manager.disconnect(websocket)

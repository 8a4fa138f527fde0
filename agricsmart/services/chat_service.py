# ==============================================================================
# CHAT SERVICE - Participant Chats
# ==============================================================================
# Chats embed their ordered message list. Every persisted change is
# relayed to the chat's realtime room after the write (best-effort).
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from agricsmart.core.constants import (
    ChatEvents,
    Collections,
    ErrorMessages,
    MessageStatus,
)
from agricsmart.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.realtime.manager import ConnectionManager
from agricsmart.schemas.chat import (
    ChatCreate,
    ChatMessageCreate,
    ChatMessageResponse,
    ChatResponse,
)
from agricsmart.services.base_service import BaseService
from agricsmart.utils.helpers import generate_uuid, utc_now

logger = logging.getLogger(__name__)


class ChatService(BaseService[ChatResponse]):
    """
    Chat creation, history and message status.

    Example:
        >>> chat = await service.create_chat(user_id, ChatCreate(participant_ids=[other]))
        >>> await service.send_message(chat.id, user_id, ChatMessageCreate(content="Hi"))
    """

    response_schema = ChatResponse
    not_found_message = ErrorMessages.CHAT_NOT_FOUND

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        realtime: Optional[ConnectionManager] = None,
    ) -> None:
        super().__init__(adapter, Collections.CHATS)
        self._realtime = realtime

    def _to_response(self, entity: Dict[str, Any]) -> ChatResponse:
        messages = entity.get("messages", [])
        last = messages[-1] if messages else None
        return ChatResponse(
            id=entity["id"],
            users=entity.get("users", []),
            group_chat=entity.get("group_chat", False),
            message_count=len(messages),
            last_message=self._message_response(entity["id"], last) if last else None,
            created_at=entity.get("created_at"),
            updated_at=entity.get("updated_at"),
        )

    @staticmethod
    def _message_response(chat_id: str, message: Dict[str, Any]) -> ChatMessageResponse:
        return ChatMessageResponse(chat_id=chat_id, **message)

    async def _notify(self, chat_id: str, event: str, data: Any) -> None:
        if self._realtime is None:
            return
        try:
            await self._realtime.emit(chat_id, event, data)
        except Exception as e:
            logger.warning(f"Realtime emit {event} to chat {chat_id} failed: {e}")

    async def get_participant_chat(self, chat_id: str, user_id: str) -> Dict[str, Any]:
        """
        Load a chat the user takes part in.

        Raises:
            NotFoundError: If the chat does not exist
            AuthorizationError: If the user is not a participant
        """
        chat = await self._get_document(chat_id)
        if user_id not in chat.get("users", []):
            raise AuthorizationError(message=ErrorMessages.NOT_CHAT_PARTICIPANT)
        return chat

    # ==========================================================================
    # CHATS
    # ==========================================================================

    async def create_chat(self, creator_id: str, schema: ChatCreate) -> ChatResponse:
        """
        Open a chat. A one-to-one chat between the same two users is reused.
        """
        users: List[str] = [creator_id]
        for participant in schema.participant_ids:
            if participant not in users:
                users.append(participant)

        if len(users) < 2:
            raise ValidationError(message="A chat needs at least one other participant")
        if not schema.group_chat and len(users) > 2:
            raise ValidationError(message="Use group_chat for more than two participants")

        found = await self._adapter.count(
            Collections.USERS,
            {"id": {"$in": users[1:]}},
        )
        if found != len(users) - 1:
            raise NotFoundError(message=ErrorMessages.USER_NOT_FOUND, resource_type="user")

        if not schema.group_chat:
            existing = await self._adapter.find_one(
                self._collection_name,
                {"group_chat": False, "users": {"$all": users, "$size": 2}},
            )
            if existing:
                return self._to_response(existing)

        result = await self._adapter.create(
            self._collection_name,
            {"users": users, "group_chat": schema.group_chat, "messages": []},
        )
        logger.info(f"Chat {result['id']} created by {creator_id} with {len(users)} users")
        return self._to_response(result)

    async def get_user_chats(self, user_id: str) -> List[ChatResponse]:
        return await self.get_all(
            limit=200,
            filters={"users": user_id},
            sort=[("updated_at", -1)],
        )

    # ==========================================================================
    # MESSAGES
    # ==========================================================================

    async def get_chat_messages(
        self,
        chat_id: str,
        user_id: str,
        limit: int = 100,
        skip: int = 0,
    ) -> List[ChatMessageResponse]:
        """Messages in send order, participants only."""
        chat = await self.get_participant_chat(chat_id, user_id)
        messages = chat.get("messages", [])[skip:skip + limit]
        return [self._message_response(chat_id, m) for m in messages]

    async def send_message(
        self,
        chat_id: str,
        sender_id: str,
        schema: ChatMessageCreate,
    ) -> ChatMessageResponse:
        """Persist a message, then relay ``receiveMessage`` to the room."""
        chat = await self.get_participant_chat(chat_id, sender_id)

        message = {
            "id": generate_uuid(),
            "sender": sender_id,
            "receivers": [u for u in chat["users"] if u != sender_id],
            "content": schema.content,
            "media": schema.media,
            "delivered": False,
            "read": False,
            "created_at": utc_now(),
        }
        await self._adapter.update_one(
            self._collection_name,
            {"id": chat_id},
            {"$push": {"messages": message}},
        )

        response = self._message_response(chat_id, message)
        await self._notify(chat_id, ChatEvents.RECEIVE_MESSAGE, response.model_dump(mode="json"))
        return response

    async def update_message_status(
        self,
        chat_id: str,
        message_id: str,
        user_id: str,
        status: str,
    ) -> ChatMessageResponse:
        """
        Mark a message delivered or read. Read implies delivered.
        """
        if status not in MessageStatus.ALL:
            raise ValidationError(message=f"Invalid message status: {status}")

        await self.get_participant_chat(chat_id, user_id)

        changes = {"messages.$.delivered": True}
        if status == MessageStatus.READ:
            changes["messages.$.read"] = True

        chat = await self._adapter.find_one_and_update(
            self._collection_name,
            {"id": chat_id, "messages.id": message_id},
            {"$set": changes},
        )
        if chat is None:
            raise NotFoundError(
                message=ErrorMessages.MESSAGE_NOT_FOUND,
                resource_type="message",
                resource_id=message_id,
            )

        message = next(m for m in chat["messages"] if m["id"] == message_id)
        response = self._message_response(chat_id, message)
        await self._notify(
            chat_id,
            ChatEvents.MESSAGE_STATUS_UPDATED,
            {
                "chat_id": chat_id,
                "message_id": message_id,
                "status": status,
                "updated_by": user_id,
            },
        )
        return response

# ==============================================================================
# CHAT ENDPOINTS - Chats & Messages
# ==============================================================================
# REST counterpart of the realtime socket. Writes made here are relayed
# to the chat's socket room as well.
# ==============================================================================

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Query, status

from agricsmart.api.dependencies import ChatServiceDep, CurrentUser
from agricsmart.schemas.base import APIResponse
from agricsmart.schemas.chat import (
    ChatCreate,
    ChatMessageCreate,
    ChatMessageResponse,
    ChatResponse,
    MessageStatusUpdate,
)

router = APIRouter(prefix="/chat", tags=["Chat"])


# ==============================================================================
# CHATS
# ==============================================================================

@router.post(
    "",
    response_model=APIResponse[ChatResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Open chat",
    description="Open a chat with other users. An existing one-to-one chat is returned as is.",
)
async def create_chat(
    schema: ChatCreate,
    user: CurrentUser,
    service: ChatServiceDep,
) -> APIResponse[ChatResponse]:
    chat = await service.create_chat(user["id"], schema)
    return APIResponse.ok(data=chat)


@router.get(
    "",
    response_model=APIResponse[List[ChatResponse]],
    summary="List chats",
    description="Chats the current user takes part in, most recently active first.",
)
async def list_chats(
    user: CurrentUser,
    service: ChatServiceDep,
) -> APIResponse[List[ChatResponse]]:
    chats = await service.get_user_chats(user["id"])
    return APIResponse.ok(data=chats)


# ==============================================================================
# MESSAGES
# ==============================================================================

@router.get(
    "/{chat_id}/messages",
    response_model=APIResponse[List[ChatMessageResponse]],
    summary="Chat history",
)
async def get_messages(
    chat_id: str,
    user: CurrentUser,
    service: ChatServiceDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> APIResponse[List[ChatMessageResponse]]:
    messages = await service.get_chat_messages(chat_id, user["id"], limit=limit, skip=skip)
    return APIResponse.ok(data=messages)


@router.post(
    "/{chat_id}/messages",
    response_model=APIResponse[ChatMessageResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Send message",
)
async def send_message(
    chat_id: str,
    schema: ChatMessageCreate,
    user: CurrentUser,
    service: ChatServiceDep,
) -> APIResponse[ChatMessageResponse]:
    message = await service.send_message(chat_id, user["id"], schema)
    return APIResponse.ok(data=message)


@router.patch(
    "/{chat_id}/messages/{message_id}/status",
    response_model=APIResponse[ChatMessageResponse],
    summary="Update message status",
    description="Mark a message delivered or read.",
)
async def update_message_status(
    chat_id: str,
    message_id: str,
    schema: MessageStatusUpdate,
    user: CurrentUser,
    service: ChatServiceDep,
) -> APIResponse[ChatMessageResponse]:
    message = await service.update_message_status(chat_id, message_id, user["id"], schema.status)
    return APIResponse.ok(data=message)

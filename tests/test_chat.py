# ==============================================================================
# CHAT TESTS
# ==============================================================================
# REST chat endpoints, socket frame handling and the /ws/chat endpoint
# ==============================================================================

import asyncio
import json
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient
from starlette.websockets import WebSocketDisconnect

from agricsmart.realtime import ConnectionManager
from agricsmart.realtime.socket import ChatSocketSession
from agricsmart.services.chat_service import ChatService


class FakeWebSocket:
    """Records frames written by the server."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    async def send_json(self, data: Dict[str, Any]) -> None:
        self.sent.append(data)

    def events(self) -> List[str]:
        return [frame["event"] for frame in self.sent]


async def _open_chat(client: AsyncClient, user: dict, *others: dict, group: bool = False) -> dict:
    response = await client.post(
        "/api/v1/chat",
        json={"participant_ids": [o["id"] for o in others], "group_chat": group},
        headers=user["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestChats:
    """Tests for opening and listing chats."""

    @pytest.mark.asyncio
    async def test_create_chat(self, client: AsyncClient, buyer: dict, seller: dict):
        chat = await _open_chat(client, buyer, seller)

        assert chat["users"] == [buyer["id"], seller["id"]]
        assert chat["group_chat"] is False
        assert chat["message_count"] == 0

    @pytest.mark.asyncio
    async def test_one_to_one_chat_reused(self, client: AsyncClient, buyer: dict, seller: dict):
        first = await _open_chat(client, buyer, seller)
        second = await _open_chat(client, seller, buyer)

        assert first["id"] == second["id"]

    @pytest.mark.asyncio
    async def test_group_chat(self, client: AsyncClient, buyer: dict, seller: dict, educator: dict):
        chat = await _open_chat(client, buyer, seller, educator, group=True)
        assert len(chat["users"]) == 3

    @pytest.mark.asyncio
    async def test_three_people_need_group_flag(
        self, client: AsyncClient, buyer: dict, seller: dict, educator: dict
    ):
        response = await client.post(
            "/api/v1/chat",
            json={"participant_ids": [seller["id"], educator["id"]]},
            headers=buyer["headers"],
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_participant(self, client: AsyncClient, buyer: dict):
        response = await client.post(
            "/api/v1/chat",
            json={"participant_ids": ["64b7f0c2a1b2c3d4e5f60718"]},
            headers=buyer["headers"],
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_chats(self, client: AsyncClient, buyer: dict, seller: dict, educator: dict):
        await _open_chat(client, buyer, seller)
        await _open_chat(client, buyer, educator)
        await _open_chat(client, seller, educator)

        response = await client.get("/api/v1/chat", headers=buyer["headers"])
        assert len(response.json()["data"]) == 2


class TestMessages:
    """Tests for message history and status."""

    @pytest.mark.asyncio
    async def test_send_and_list(self, client: AsyncClient, buyer: dict, seller: dict):
        chat = await _open_chat(client, buyer, seller)

        for text in ("Do you have maize?", "Yes, 20 bags"):
            sender = buyer if text.startswith("Do") else seller
            response = await client.post(
                f"/api/v1/chat/{chat['id']}/messages",
                json={"content": text},
                headers=sender["headers"],
            )
            assert response.status_code == 201

        response = await client.get(f"/api/v1/chat/{chat['id']}/messages", headers=buyer["headers"])
        messages = response.json()["data"]
        assert [m["content"] for m in messages] == ["Do you have maize?", "Yes, 20 bags"]
        assert messages[0]["sender"] == buyer["id"]
        assert messages[0]["receivers"] == [seller["id"]]
        assert messages[0]["delivered"] is False

        response = await client.get("/api/v1/chat", headers=seller["headers"])
        summary = response.json()["data"][0]
        assert summary["message_count"] == 2
        assert summary["last_message"]["content"] == "Yes, 20 bags"

    @pytest.mark.asyncio
    async def test_non_participant_rejected(
        self, client: AsyncClient, buyer: dict, seller: dict, educator: dict
    ):
        chat = await _open_chat(client, buyer, seller)

        response = await client.get(f"/api/v1/chat/{chat['id']}/messages", headers=educator["headers"])
        assert response.status_code == 403

        response = await client.post(
            f"/api/v1/chat/{chat['id']}/messages",
            json={"content": "Hi"},
            headers=educator["headers"],
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_message_status(self, client: AsyncClient, buyer: dict, seller: dict):
        chat = await _open_chat(client, buyer, seller)
        sent = await client.post(
            f"/api/v1/chat/{chat['id']}/messages",
            json={"content": "Hello"},
            headers=buyer["headers"],
        )
        message_id = sent.json()["data"]["id"]

        response = await client.patch(
            f"/api/v1/chat/{chat['id']}/messages/{message_id}/status",
            json={"status": "read"},
            headers=seller["headers"],
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["read"] is True
        assert data["delivered"] is True

    @pytest.mark.asyncio
    async def test_unknown_message(self, client: AsyncClient, buyer: dict, seller: dict):
        chat = await _open_chat(client, buyer, seller)

        response = await client.patch(
            f"/api/v1/chat/{chat['id']}/messages/nope/status",
            json={"status": "delivered"},
            headers=seller["headers"],
        )
        assert response.status_code == 404


class TestSocketSession:
    """Tests for frame handling on an authenticated socket."""

    @pytest.mark.asyncio
    async def test_join_send_and_typing(self, client: AsyncClient, adapter, buyer: dict, seller: dict):
        chat = await _open_chat(client, buyer, seller)
        manager = ConnectionManager()
        buyer_ws, seller_ws = FakeWebSocket(), FakeWebSocket()
        buyer_session = ChatSocketSession(buyer_ws, buyer["id"], ChatService(adapter, manager), manager)
        seller_session = ChatSocketSession(seller_ws, seller["id"], ChatService(adapter, manager), manager)

        await buyer_session.handle(json.dumps({"event": "joinChat", "data": {"chatId": chat["id"]}}))
        await seller_session.handle(json.dumps({"event": "joinChat", "data": {"chatId": chat["id"]}}))
        assert buyer_ws.sent[0] == {"event": "joined", "data": {"chat_id": chat["id"]}}
        assert manager.room_size(chat["id"]) == 2

        await buyer_session.handle(
            json.dumps({"event": "sendMessage", "data": {"chatId": chat["id"], "content": "Akwaaba"}})
        )
        received = seller_ws.sent[-1]
        assert received["event"] == "receiveMessage"
        assert received["data"]["content"] == "Akwaaba"
        assert received["data"]["sender"] == buyer["id"]

        await seller_session.handle(json.dumps({"event": "typing", "data": {"chatId": chat["id"]}}))
        assert buyer_ws.sent[-1] == {
            "event": "typingIndicator",
            "data": {"chat_id": chat["id"], "user_id": seller["id"]},
        }

        await seller_session.handle(
            json.dumps(
                {
                    "event": "updateMessageStatus",
                    "data": {
                        "chatId": chat["id"],
                        "messageId": received["data"]["id"],
                        "status": "read",
                    },
                }
            )
        )
        assert buyer_ws.sent[-1]["event"] == "messageStatusUpdated"
        assert buyer_ws.sent[-1]["data"]["status"] == "read"

        await buyer_session.handle(json.dumps({"event": "leaveChat", "data": {"chatId": chat["id"]}}))
        assert manager.room_size(chat["id"]) == 1

    @pytest.mark.asyncio
    async def test_bad_frames_answered_with_error(self, adapter, buyer: dict):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        session = ChatSocketSession(ws, buyer["id"], ChatService(adapter, manager), manager)

        await session.handle("not json")
        await session.handle(json.dumps({"event": "dance", "data": {}}))
        await session.handle(json.dumps({"event": "joinChat", "data": {}}))
        await session.handle(
            json.dumps({"event": "joinChat", "data": {"chatId": "64b7f0c2a1b2c3d4e5f60718"}})
        )

        assert ws.events() == ["error"] * 4
        assert ws.sent[0]["data"]["message"] == "Invalid JSON"
        assert ws.sent[1]["data"]["message"] == "Unknown event: dance"
        assert ws.sent[3]["data"]["message"] == "Chat not found"

    @pytest.mark.asyncio
    async def test_non_participant_cannot_join(
        self, client: AsyncClient, adapter, buyer: dict, seller: dict, educator: dict
    ):
        chat = await _open_chat(client, buyer, seller)
        manager = ConnectionManager()
        ws = FakeWebSocket()
        session = ChatSocketSession(ws, educator["id"], ChatService(adapter, manager), manager)

        await session.handle(json.dumps({"event": "joinChat", "data": {"chatId": chat["id"]}}))

        assert ws.events() == ["error"]
        assert manager.room_size(chat["id"]) == 0


class StalledWebSocket(FakeWebSocket):
    """A client that never drains its socket."""

    async def send_json(self, data: Dict[str, Any]) -> None:
        await asyncio.Event().wait()


class TestConnectionManager:
    """Tests for room fan-out."""

    @pytest.mark.asyncio
    async def test_stalled_room_does_not_block_other_rooms(self):
        manager = ConnectionManager(send_timeout=30)
        stalled, listener = StalledWebSocket(), FakeWebSocket()
        manager.join("room-a", stalled)
        manager.join("room-b", listener)

        pending = asyncio.create_task(manager.emit("room-a", "receiveMessage", {"n": 1}))
        await asyncio.sleep(0)

        sent = await asyncio.wait_for(manager.emit("room-b", "receiveMessage", {"n": 2}), 1)

        assert sent == 1
        assert listener.sent == [{"event": "receiveMessage", "data": {"n": 2}}]
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

    @pytest.mark.asyncio
    async def test_stalled_member_dropped_after_timeout(self):
        manager = ConnectionManager(send_timeout=0.05)
        stalled, listener = StalledWebSocket(), FakeWebSocket()
        manager.join("room", stalled)
        manager.join("room", listener)

        sent = await manager.emit("room", "typingIndicator", {"user_id": "u1"})

        assert sent == 1
        assert listener.events() == ["typingIndicator"]
        assert manager.room_size("room") == 1

    @pytest.mark.asyncio
    async def test_exclude_skips_sender(self):
        manager = ConnectionManager()
        sender, other = FakeWebSocket(), FakeWebSocket()
        manager.join("room", sender)
        manager.join("room", other)

        assert await manager.emit("room", "stoppedTyping", {}, exclude=sender) == 1
        assert sender.sent == []


class TestSocketEndpoint:
    """Tests for the /ws/chat endpoint."""

    @pytest.mark.asyncio
    async def test_connect_join_and_message(self, app, client: AsyncClient, buyer: dict, seller: dict):
        chat = await _open_chat(client, buyer, seller)
        test_client = TestClient(app)

        with test_client.websocket_connect(f"/ws/chat?token={buyer['token']}") as ws:
            ws.send_json({"event": "joinChat", "data": {"chatId": chat["id"]}})
            assert ws.receive_json()["event"] == "joined"

            ws.send_json({"event": "sendMessage", "data": {"chatId": chat["id"], "content": "Hi"}})
            frame = ws.receive_json()
            assert frame["event"] == "receiveMessage"
            assert frame["data"]["content"] == "Hi"

    @pytest.mark.asyncio
    async def test_rejects_invalid_token(self, app):
        test_client = TestClient(app)

        with pytest.raises(WebSocketDisconnect):
            with test_client.websocket_connect("/ws/chat?token=bogus") as ws:
                ws.receive_json()

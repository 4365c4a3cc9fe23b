# =============================================================================
# tests/test_websocket.py - Credits WebSocket Tests
# =============================================================================
# Tests for /ws/credits and the connection manager.
#
# Run with: pytest tests/test_websocket.py -v
# =============================================================================

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketDisconnect

from app.websocket.manager import CreditsConnectionManager
from core.resources.credits import CreditsPoller, CreditsResource
from tests.conftest import USER_ID, FakeSupabase, make_token


class TestCreditsWebSocket:
    """Tests for the /ws/credits endpoint."""

    def test_connect_pushes_credits_and_answers_ping(self, client, db, services):
        db.respond("ai_credits", [{"id": "c1", "credits_used": 7}])

        with client.websocket_connect(f"/ws/credits?token={make_token()}") as websocket:
            first, second = websocket.receive_json(), websocket.receive_json()
            events = {event["type"]: event for event in (first, second)}

            assert events["connected"]["user_id"] == USER_ID
            assert events["credits"]["credits"]["credits_used"] == 7
            assert events["credits"]["error"] is None
            assert services.connections.get_connection_count(USER_ID) == 1

            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"

        assert client.get("/ws/status").json() == {"total_connections": 0, "active_users": 0}

    def test_invalid_token_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws/credits?token=nonsense"):
                pass

        assert exc_info.value.code == 4001


class TestCreditsConnectionManager:
    """Tests for CreditsConnectionManager."""

    def make_socket(self):
        websocket = MagicMock()
        websocket.accept = AsyncMock()
        websocket.send_json = AsyncMock()
        return websocket

    def make_poller(self):
        poller = MagicMock()
        poller.stop = AsyncMock()
        return poller

    def test_connect_starts_and_disconnect_stops_poller(self):
        async def scenario():
            manager = CreditsConnectionManager()
            websocket, poller = self.make_socket(), self.make_poller()

            await manager.connect(USER_ID, websocket, poller)
            websocket.accept.assert_awaited_once()
            poller.start.assert_called_once()
            assert manager.get_active_users() == [USER_ID]

            await manager.disconnect(USER_ID, websocket)
            poller.stop.assert_awaited_once()
            assert manager.get_connection_count() == 0

        asyncio.run(scenario())

    def test_broadcast_drops_failed_sockets(self):
        async def scenario():
            manager = CreditsConnectionManager()
            healthy, broken = self.make_socket(), self.make_socket()
            broken.send_json.side_effect = RuntimeError("socket closed")
            await manager.connect(USER_ID, healthy, self.make_poller())
            await manager.connect(USER_ID, broken, self.make_poller())

            sent = await manager.broadcast(USER_ID, {"type": "credits"})

            assert sent == 1
            assert manager.get_connection_count(USER_ID) == 1

        asyncio.run(scenario())

    def test_broadcast_to_unknown_user(self):
        assert asyncio.run(CreditsConnectionManager().broadcast("nobody", {})) == 0

    def test_disconnect_survives_failing_poller(self):
        async def scenario():
            manager = CreditsConnectionManager()
            websocket, poller = self.make_socket(), self.make_poller()
            poller.stop.side_effect = RuntimeError("socket closed")
            await manager.connect(USER_ID, websocket, poller)

            await manager.disconnect(USER_ID, websocket)

            assert manager.get_connection_count() == 0

        asyncio.run(scenario())

    def test_close_stops_every_poller_even_if_one_failed(self):
        """Test that shutdown stops live pollers after another poller died on a closed socket."""
        async def push_to_closed_socket(state):
            raise RuntimeError("socket closed")

        async def scenario():
            # Arrange: one poller dies on its first push, one keeps polling
            manager = CreditsConnectionManager()
            resource = CreditsResource(FakeSupabase(), USER_ID)
            dead = CreditsPoller(resource, interval=0.01, on_update=push_to_closed_socket)
            live = CreditsPoller(resource, interval=0.01)
            await manager.connect(USER_ID, self.make_socket(), dead)
            await manager.connect("other-user", self.make_socket(), live)
            while dead.running:
                await asyncio.sleep(0.01)

            # Act
            await manager.close()

            # Assert
            assert not live.running
            assert not dead.running
            assert manager.get_connection_count() == 0
            assert manager.get_active_users() == []

        asyncio.run(scenario())

    def test_close_continues_past_a_failing_stop(self):
        async def scenario():
            manager = CreditsConnectionManager()
            failing, healthy = self.make_poller(), self.make_poller()
            failing.stop.side_effect = RuntimeError("boom")
            await manager.connect(USER_ID, self.make_socket(), failing)
            await manager.connect(USER_ID, self.make_socket(), healthy)

            await manager.close()

            healthy.stop.assert_awaited_once()
            assert manager.get_connection_count() == 0

        asyncio.run(scenario())

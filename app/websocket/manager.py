# =============================================================================
# app/websocket/manager.py - Credits WebSocket Connection Manager
# =============================================================================
# Tracks open /ws/credits connections per user, each with its own
# CreditsPoller, and pushes credit updates to them.
#
# Usage:
#   manager = services.connections
#
#   # Connect a client (accepts the socket and starts its poller)
#   await manager.connect(user_id, websocket, poller)
#
#   # Push fresh credits to every tab the user has open
#   await manager.broadcast(user_id, {"type": "credits", "credits": {...}})
#
#   # Disconnect a client (stops its poller)
#   await manager.disconnect(user_id, websocket)
# =============================================================================

import asyncio
import logging

from fastapi import WebSocket

from core.resources.credits import CreditsPoller

logger = logging.getLogger(__name__)


class CreditsConnectionManager:
    """
    Manages credits WebSocket connections organized by user ID.

    A user can have several connections (e.g. multiple browser tabs). Each
    connection owns one poller, which is stopped when the connection goes
    away.
    """

    def __init__(self):
        # user_id -> {websocket: poller}
        self.connections: dict[str, dict[WebSocket, CreditsPoller]] = {}
        self._total_connections = 0

    async def connect(self, user_id: str, websocket: WebSocket, poller: CreditsPoller) -> None:
        """
        Accept a new WebSocket connection, track it and start its poller.

        Args:
            user_id: Owner of the connection
            websocket: The WebSocket connection
            poller: Poller pushing this user's credits to the socket
        """
        await websocket.accept()

        self.connections.setdefault(user_id, {})[websocket] = poller
        self._total_connections += 1
        poller.start()

        logger.info(
            f"Credits WebSocket connected for user {user_id}. "
            f"Total connections: {self._total_connections}"
        )

    async def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        """
        Stop the connection's poller and forget the connection.
        """
        poller = self.connections.get(user_id, {}).pop(websocket, None)
        if poller is None:
            return

        self._total_connections -= 1
        if not self.connections[user_id]:
            del self.connections[user_id]

        try:
            await poller.stop()
        except Exception as e:
            logger.warning(f"Failed to stop credits poller for user {user_id}: {e}")

        logger.info(
            f"Credits WebSocket disconnected for user {user_id}. "
            f"Total connections: {self._total_connections}"
        )

    async def broadcast(self, user_id: str, message: dict) -> int:
        """
        Send a message to every connection of a user.

        Connections that fail to receive are disconnected.

        Returns:
            int: Number of clients the message was sent to
        """
        sockets = list(self.connections.get(user_id, {}))
        if not sockets:
            logger.debug(f"No credits connections for user {user_id}, skipping broadcast")
            return 0

        sent_count = 0
        for websocket in sockets:
            try:
                await websocket.send_json(message)
                sent_count += 1
            except Exception as e:
                logger.warning(f"Failed to send to WebSocket: {e}")
                await self.disconnect(user_id, websocket)

        logger.debug(
            f"Broadcast to user {user_id}: "
            f"type={message.get('type')}, sent to {sent_count} clients"
        )
        return sent_count

    def get_connection_count(self, user_id: str | None = None) -> int:
        """
        Get the number of active connections.

        Args:
            user_id: If provided, count for that user. Otherwise total.
        """
        if user_id:
            return len(self.connections.get(user_id, {}))
        return self._total_connections

    def get_active_users(self) -> list[str]:
        return list(self.connections.keys())

    async def close(self) -> None:
        """Stop every poller, even when some of them fail. Called on shutdown."""
        connections, self.connections = self.connections, {}
        pollers = [
            (user_id, poller)
            for user_id, sockets in connections.items()
            for poller in sockets.values()
        ]
        self._total_connections = 0

        results = await asyncio.gather(
            *(poller.stop() for _, poller in pollers),
            return_exceptions=True,
        )
        for (user_id, _), result in zip(pollers, results):
            if isinstance(result, BaseException):
                logger.warning(f"Failed to stop credits poller for user {user_id}: {result}")

        logger.info(f"Credits connections closed: {len(pollers)} pollers stopped")

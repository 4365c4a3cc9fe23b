# =============================================================================
# app/websocket/__init__.py - WebSocket Module
# =============================================================================
# Live AI credit updates.
#
# Usage:
#   # Push fresh credits to every connection a user has open
#   await services.connections.broadcast(user_id, {
#       "type": "credits",
#       "credits": {...}
#   })
# =============================================================================

from app.websocket.manager import CreditsConnectionManager

__all__ = [
    "CreditsConnectionManager",
]

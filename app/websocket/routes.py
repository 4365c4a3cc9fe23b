# =============================================================================
# app/websocket/routes.py - WebSocket Routes
# =============================================================================
# Live AI credit counter for open planner/profile views.
#
# Connect: ws://host/ws/credits?token={jwt}
#
# Events:
#   - {"type": "connected", "user_id": "..."}
#   - {"type": "credits", "credits": {...}, "error": null}
#
# The server reloads the user's credits every CREDITS_POLL_INTERVAL_SECONDS
# and after each AI reply. Clients may send "ping" and get "pong".
# =============================================================================

import logging

import httpx
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from app.auth.session import SessionInvalidError
from app.dependencies import ServicesDep
from core.resources.base import ResourceState
from core.resources.credits import CreditsPoller, CreditsResource

logger = logging.getLogger(__name__)

router = APIRouter()


def credits_event(state: ResourceState) -> dict:
    credits = state.data
    return {
        "type": "credits",
        "credits": credits.model_dump(mode="json") if credits else None,
        "error": state.error,
    }


@router.websocket("/ws/credits")
async def credits_websocket(
    websocket: WebSocket,
    token: str = Query(..., description="JWT token for authentication"),
):
    """
    WebSocket endpoint for live credit updates.

    Authentication is required via the `token` query parameter. The
    connection's poller is stopped when the client disconnects.

    Example event:
        {
            "type": "credits",
            "credits": {
                "credits_used": 12,
                "credits_remaining": 488,
                "max_credits": 500,
                "reset_at": "2024-02-01T00:00:00+00:00"
            },
            "error": null
        }
    """
    services = websocket.app.state.services

    # 1. Verify JWT token
    try:
        user = await services.sessions.verify_access_token(token)
    except SessionInvalidError as e:
        logger.warning(f"WebSocket auth failed: {e}")
        await websocket.close(code=4001, reason="Invalid token")
        return
    except httpx.HTTPError as e:
        logger.error(f"WebSocket auth unavailable: {e}")
        await websocket.close(code=4000, reason="Authentication service unavailable")
        return

    user_id = str(user.id)

    # 2. Accept connection and start polling
    async def push(state: ResourceState) -> None:
        await websocket.send_json(credits_event(state))

    resource = CreditsResource(services.supabase.for_user(token), user_id)
    poller = CreditsPoller(
        resource,
        interval=services.settings.CREDITS_POLL_INTERVAL_SECONDS,
        on_update=push,
    )
    await services.connections.connect(user_id, websocket, poller)

    try:
        await websocket.send_json({"type": "connected", "user_id": user_id})

        # Keep connection alive and handle incoming messages
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
            else:
                logger.debug(f"WebSocket received: {data[:100]}")

    except WebSocketDisconnect:
        logger.info(f"Credits WebSocket client disconnected for user {user_id}")
    finally:
        await services.connections.disconnect(user_id, websocket)


@router.get("/ws/status")
async def websocket_status(services: ServicesDep):
    """
    Get credits WebSocket connection statistics.

    Returns:
        dict: Connection counts and connected users
    """
    connections = services.connections
    return {
        "total_connections": connections.get_connection_count(),
        "active_users": len(connections.get_active_users()),
    }

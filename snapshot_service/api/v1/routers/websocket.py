"""WebSocket endpoint streaming task notifications."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import structlog

from snapshot_service.core.notifier import NotificationHub, WebSocketListener

logger = structlog.get_logger(__name__)
router = APIRouter(tags=["notifications"])


@router.websocket("/ws")
async def notifications(websocket: WebSocket) -> None:
    """Push every task's progress and result to the connected client.

    Inbound messages are read only to notice the client going away.
    """
    hub: NotificationHub = websocket.app.state.hub
    listener = WebSocketListener(websocket)

    # Registered before the handshake completes; the hub skips it until open
    hub.register(listener)
    try:
        await websocket.accept()
        logger.info("WebSocket connection established", listener_id=listener.listener_id)

        while True:
            await websocket.receive_text()
    except WebSocketDisconnect as e:
        logger.info(
            "WebSocket connection closed",
            listener_id=listener.listener_id,
            code=e.code,
        )
    except Exception as e:
        logger.error(
            "WebSocket error", listener_id=listener.listener_id, error=str(e)
        )
    finally:
        hub.unregister(listener)

"""WebSocket transport for the deployment log subscription protocol."""

import asyncio
from contextlib import suppress

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from starlette.websockets import WebSocketState

from deployhub.core.console import DeploymentConsole
from deployhub.core.registry import Observer
from deployhub.utils.logging import get_logger

router = APIRouter(tags=["websocket"])
logger = get_logger(__name__)


def _is_connected(websocket: WebSocket) -> bool:
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )


async def _forward(websocket: WebSocket, observer: Observer) -> None:
    """Write queued messages to the socket until either side closes."""
    async for message in observer.messages():
        if not _is_connected(websocket):
            observer.close()
            return
        try:
            await websocket.send_json(message)
        except WebSocketDisconnect as e:
            logger.info("websocket.client_gone", observer=observer.id, code=e.code)
            observer.close()
            return
        except Exception:
            logger.exception("websocket.send_failed", observer=observer.id)
            observer.close()
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            return

    if observer.overflowed and _is_connected(websocket):
        # Client fell too far behind; it can reconnect and get the backfill.
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)


@router.websocket("/ws")
async def deployment_log_socket(websocket: WebSocket) -> None:
    """Accept subscribe messages and push log messages back."""
    console: DeploymentConsole = websocket.app.state.console
    await websocket.accept()

    observer = Observer(label="ws")
    writer = asyncio.create_task(_forward(websocket, observer))
    logger.info("websocket.connected", observer=observer.id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text") or message.get("bytes") or ""
            await console.subscriptions.handle_message(observer, raw)
    finally:
        console.subscriptions.release(observer)
        writer.cancel()
        with suppress(asyncio.CancelledError):
            await writer
        logger.info(
            "websocket.disconnected",
            observer=observer.id,
            deployment_id=observer.deployment_id,
        )

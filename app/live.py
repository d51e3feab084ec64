"""Websocket endpoint pushing readings to viewers as they arrive."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket
from starlette.websockets import WebSocketState

from services.broadcaster import Broadcaster, build_default_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


class WebSocketSubscriber:
    """Adapts a FastAPI websocket to the broadcaster's subscriber interface."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    @property
    def ready(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, payload: Dict[str, Any]) -> None:
        await self.websocket.send_json(payload)


def get_broadcaster() -> Broadcaster:
    return build_default_broadcaster()


@router.websocket("/ws")
async def live_readings(
    websocket: WebSocket,
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> None:
    await websocket.accept()
    subscriber_id = await broadcaster.subscribe(WebSocketSubscriber(websocket))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            logger.debug("Ignoring viewer message", extra={"subscriber_id": subscriber_id})
    finally:
        broadcaster.unsubscribe(subscriber_id)

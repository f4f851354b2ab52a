"""WebSocket endpoint for live snapshot updates."""

import json
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..services.menu_builder import build_menu

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


def snapshot_message(snapshot) -> dict:
    return {
        "type": "snapshot",
        "snapshot": snapshot.model_dump(mode="json"),
        "menu": build_menu(snapshot).model_dump(mode="json"),
    }


class ConnectionManager:
    def __init__(self):
        self.active: list[WebSocket] = []

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.active.append(ws)

    def disconnect(self, ws: WebSocket):
        if ws in self.active:
            self.active.remove(ws)

    async def broadcast(self, message: dict):
        for ws in list(self.active):
            try:
                await ws.send_json(message)
            except Exception:
                self.disconnect(ws)


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    manager: ConnectionManager = ws.app.state.connections
    aggregator = ws.app.state.aggregator
    await manager.connect(ws)

    snapshot = aggregator.snapshot
    if snapshot is not None:
        await ws.send_json(snapshot_message(snapshot))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue

            # Opening the menu
            if isinstance(msg, dict) and msg.get("action") == "refresh":
                aggregator.trigger_refresh()

    except WebSocketDisconnect:
        manager.disconnect(ws)
    except Exception as e:
        logger.debug(f"WebSocket closed: {e}")
        manager.disconnect(ws)

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import WebSocket

active_connections: List[WebSocket] = []
logger = logging.getLogger(__name__)

# Event loop serving the websockets, used by non-async publishers such as the MQTT thread
_loop: Optional[asyncio.AbstractEventLoop] = None


def bind_loop(loop: asyncio.AbstractEventLoop) -> None:
    global _loop
    _loop = loop


async def connect(websocket: WebSocket):
    await websocket.accept()
    active_connections.append(websocket)
    await websocket.send_json({"type": "connection", "message": "Connected to Airwise live readings"})
    logger.info(f"🔌 WebSocket connected ({len(active_connections)} active)")


async def disconnect(websocket: WebSocket):
    if websocket in active_connections:
        active_connections.remove(websocket)
    logger.info(f"🔌 WebSocket disconnected ({len(active_connections)} active)")


async def broadcast_to_websockets(message: Dict[str, Any]):
    disconnected = []
    for ws in list(active_connections):
        try:
            await ws.send_json(message)
        except Exception as e:
            logger.warning(f"WebSocket send failed: {e}")
            disconnected.append(ws)
    for ws in disconnected:
        await disconnect(ws)


def broadcast_threadsafe(message: Dict[str, Any]) -> None:
    """Schedule a broadcast from a thread that is not running the event loop"""
    if _loop is None or _loop.is_closed() or not active_connections:
        return
    asyncio.run_coroutine_threadsafe(broadcast_to_websockets(message), _loop)


def reading_event(reading: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "reading", "data": reading}

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from core.websocket_manager import connect, disconnect

import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint streaming every accepted reading"""
    await connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await disconnect(websocket)

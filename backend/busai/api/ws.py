"""WebSocket endpoint for real-time alert snapshots."""

import asyncio
import logging

import orjson
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter()

# Will be set by main.py on startup
broadcaster = None
engine = None


async def _current_snapshot() -> dict | None:
    """Last published snapshot, else the engine's (empty before the first tick)."""
    state_data = await broadcaster.get_current_state()
    if state_data:
        return orjson.loads(state_data)
    if engine is not None:
        return engine.get_latest_snapshot().model_dump(mode="json")
    return None


@router.websocket("/ws/alerts")
async def alerts_ws(websocket: WebSocket) -> None:
    """Stream alert snapshots as they are published."""
    await websocket.accept()

    if broadcaster is None:
        await websocket.close(code=1011, reason="Service not ready")
        return

    snapshot = await _current_snapshot()
    if snapshot is not None:
        snapshot["type"] = "snapshot"
        await websocket.send_bytes(orjson.dumps(snapshot))

    queue = broadcaster.subscribe()
    try:
        while True:
            data = await queue.get()
            await websocket.send_bytes(data)
    except WebSocketDisconnect:
        pass
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("WebSocket error")
    finally:
        broadcaster.unsubscribe(queue)

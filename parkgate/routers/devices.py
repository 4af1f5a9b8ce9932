# parkgate/routers/devices.py
"""
Booth device connections.

Displays (and any other booth device that wants pushed outcomes) keep a
WebSocket open on /ws/devices/{device_id}. Frames are JSON objects of the
form {"event": ..., "payload": {...}} in both directions.
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from parkgate.database import get_db
from parkgate.services.booth_directory import find_device
from parkgate.services.connection_registry import (
    clear_device_connection, mark_device_connected, registry,
)
from parkgate.utils.logger import get_logger
from parkgate.utils.time_utils import utcnow

logger = get_logger(__name__)

router = APIRouter()

# Policy violation: device is not attached to any booth
UNAUTHORIZED_CLOSE_CODE = 1008


@router.websocket("/ws/devices/{device_id}")
async def device_socket(websocket: WebSocket, device_id: str, db: Session = Depends(get_db)):
    await websocket.accept()

    device = find_device(db, device_id)
    if device is None:
        logger.warning(f"[DEVICES] Rejected unknown device {device_id}")
        await websocket.send_json({"event": "unauthorized",
                                   "payload": {"message": "Device not registered to any booth"}})
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
        return

    details = {
        "message": "Device connected successfully",
        "booth_code": device.booth.booth_code,
        "booth_type": device.booth.booth_type,
        "device_type": device.role,
    }
    connection = registry.register(device_id, websocket)
    mark_device_connected(db, device_id, connection.connection_id)
    logger.info(f"[DEVICES] {device_id} connected ({details['device_type']} @ booth {details['booth_code']})")

    try:
        await connection.send("registration_success", {**details, "connection_id": connection.connection_id})
        while True:
            message = await websocket.receive_json()
            event = message.get("event") if isinstance(message, dict) else None
            if event == "keep-alive":
                await connection.send("keep-alive-response", {"timestamp": utcnow().isoformat()})
            else:
                logger.debug(f"[DEVICES] {device_id} sent unhandled frame: {message}")
    except WebSocketDisconnect:
        logger.info(f"[DEVICES] {device_id} disconnected")
    except Exception as e:
        logger.warning(f"[DEVICES] {device_id} connection error: {e}")
    finally:
        registry.unregister(device_id, connection)
        clear_device_connection(db, device_id, connection.connection_id)


@router.get("/devices/connections", summary="Devices currently connected")
def list_connections():
    return [
        {
            "device_id": c.device_id,
            "connection_id": c.connection_id,
            "connected_at": c.connected_at.isoformat(),
            "live": c.is_live,
        }
        for c in registry.snapshot()
    ]

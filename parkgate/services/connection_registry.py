# parkgate/services/connection_registry.py
"""
Live connection directory: device_id → the WebSocket the device is currently
connected on. Kept in memory, separate from the persisted booth/device rows;
BoothDevice.connection_id only mirrors the current handle id for visibility.

The sweep only ever clears. A handle is dropped only if it is still the one
observed, so a device that re-registers mid-sweep keeps its fresh handle.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session
from starlette.websockets import WebSocketState

from parkgate.models.booth import BoothDevice
from parkgate.utils.logger import get_logger
from parkgate.utils.time_utils import utcnow

logger = get_logger(__name__)


@dataclass
class DeviceConnection:
    device_id: str
    websocket: Any
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    connected_at: datetime = field(default_factory=utcnow)

    @property
    def is_live(self) -> bool:
        return (self.websocket.client_state == WebSocketState.CONNECTED
                and self.websocket.application_state == WebSocketState.CONNECTED)

    async def send(self, event: str, payload: dict):
        await self.websocket.send_json({"event": event, "payload": payload})


class ConnectionRegistry:
    def __init__(self):
        self._connections: dict[str, DeviceConnection] = {}

    def register(self, device_id: str, websocket) -> DeviceConnection:
        connection = DeviceConnection(device_id=device_id, websocket=websocket)
        previous = self._connections.get(device_id)
        self._connections[device_id] = connection
        if previous:
            logger.info(f"[DEVICES] {device_id} replaced connection {previous.connection_id[:8]}")
        return connection

    def get(self, device_id: str) -> Optional[DeviceConnection]:
        return self._connections.get(device_id)

    def unregister(self, device_id: str, connection: DeviceConnection) -> bool:
        """Drop the handle only if it is still the current one for this device."""
        current = self._connections.get(device_id)
        if current is None or current.connection_id != connection.connection_id:
            return False
        del self._connections[device_id]
        return True

    def snapshot(self) -> list[DeviceConnection]:
        return list(self._connections.values())

    def __len__(self):
        return len(self._connections)


registry = ConnectionRegistry()


def mark_device_connected(db: Session, device_id: str, connection_id: str) -> None:
    db.query(BoothDevice).filter(BoothDevice.device_id == device_id).update(
        {BoothDevice.connection_id: connection_id}, synchronize_session=False)
    db.commit()


def clear_device_connection(db: Session, device_id: str, connection_id: str) -> bool:
    cleared = db.query(BoothDevice).filter(
        BoothDevice.device_id == device_id,
        BoothDevice.connection_id == connection_id,
    ).update({BoothDevice.connection_id: None}, synchronize_session=False)
    db.commit()
    return bool(cleared)


def clear_all_connection_ids(db: Session) -> int:
    """Startup: nothing can be connected before the server is listening."""
    cleared = db.query(BoothDevice).filter(BoothDevice.connection_id.isnot(None)).update(
        {BoothDevice.connection_id: None}, synchronize_session=False)
    db.commit()
    if cleared:
        logger.info(f"🧹 Cleared connection ids from {cleared} devices during startup")
    return cleared


def sweep_stale_connections(conn_registry: ConnectionRegistry, db: Session) -> int:
    cleared = 0

    for connection in conn_registry.snapshot():
        if not connection.is_live and conn_registry.unregister(connection.device_id, connection):
            logger.info(f"[SWEEP] Dropped dead connection for device {connection.device_id}")
            cleared += 1

    stored = (
        db.query(BoothDevice.id, BoothDevice.device_id, BoothDevice.connection_id)
        .filter(BoothDevice.connection_id.isnot(None))
        .all()
    )
    for row_id, device_id, observed in stored:
        live = conn_registry.get(device_id)
        if live is not None and live.connection_id == observed:
            continue
        cleared += db.query(BoothDevice).filter(
            BoothDevice.id == row_id,
            BoothDevice.connection_id == observed,
        ).update({BoothDevice.connection_id: None}, synchronize_session=False)
        logger.info(f"[SWEEP] Cleared stale connection id for device {device_id}")

    db.commit()
    return cleared


async def run_connection_sweeper(conn_registry: ConnectionRegistry, session_factory, interval: int):
    """Background loop started at application startup; cancelled on shutdown."""
    logger.info(f"[SWEEP] Stale connection sweep every {interval}s")
    while True:
        await asyncio.sleep(interval)
        db = session_factory()
        try:
            sweep_stale_connections(conn_registry, db)
        except Exception as e:
            db.rollback()
            logger.error(f"[SWEEP] Sweep failed: {e}", exc_info=True)
        finally:
            db.close()

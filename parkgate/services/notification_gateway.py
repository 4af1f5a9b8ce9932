# parkgate/services/notification_gateway.py
"""
Device notification gateway. Pushes outcomes to a booth's display and pulses
its barrier. Best-effort throughout: every failure is logged and reported as
False, nothing is raised back into the admission/settlement path.

Controllers call dispatch_outcome() after their decision is committed; it runs
in a background task (barrier first, then display) so the HTTP response never
waits on hardware.
"""

import asyncio
from typing import Optional

from parkgate.config import settings
from parkgate.database import SessionLocal
from parkgate.models.enums import DeviceRole
from parkgate.services.barrier_driver import BarrierDriver
from parkgate.services.booth_directory import find_booth
from parkgate.services.connection_registry import ConnectionRegistry, registry
from parkgate.services.errors import UpstreamDeviceError
from parkgate.utils.logger import get_logger

logger = get_logger(__name__)

# Barrier relays are wired either to a dedicated barrier unit or to the ANPR camera's alarm-out
_BARRIER_ROLES = (DeviceRole.BARRIER, DeviceRole.CAMERA)


class DeviceGateway:
    def __init__(self, conn_registry: ConnectionRegistry, barrier_driver: BarrierDriver,
                 session_factory=SessionLocal, send_timeout: float = 3.0):
        self.registry = conn_registry
        self.barrier_driver = barrier_driver
        self.session_factory = session_factory
        self.send_timeout = send_timeout
        self._pending: set[asyncio.Task] = set()

    def _device_for(self, booth_code: str, roles) -> Optional[tuple[str, Optional[str]]]:
        db = self.session_factory()
        try:
            booth = find_booth(db, booth_code)
            if booth is None:
                return None
            for role in roles:
                device = booth.device_for(role.value)
                if device is not None:
                    return device.device_id, device.ip_address
            return None
        finally:
            db.close()

    async def notify(self, booth_code: str, role: DeviceRole, event: str, payload: dict) -> bool:
        try:
            found = self._device_for(booth_code, (role,))
        except Exception as e:
            logger.error(f"[DISPLAY] Device lookup failed for booth {booth_code}: {e}")
            return False
        if found is None:
            logger.warning(f"[DISPLAY] No {role.value} device attached to booth {booth_code}")
            return False

        device_id, _ = found
        connection = self.registry.get(device_id)
        if connection is None or not connection.is_live:
            logger.warning(f"[DISPLAY] Device {device_id} (booth {booth_code}) is not connected")
            return False

        try:
            await asyncio.wait_for(connection.send(event, payload), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[DISPLAY] Push to {device_id} timed out after {self.send_timeout}s")
            return False
        except Exception as e:
            logger.warning(f"[DISPLAY] Push to {device_id} failed: {e}")
            return False

        logger.debug(f"[DISPLAY] {device_id} ← {event}")
        return True

    async def pulse_barrier(self, booth_code: str) -> bool:
        try:
            found = self._device_for(booth_code, _BARRIER_ROLES)
        except Exception as e:
            logger.error(f"[BARRIER] Device lookup failed for booth {booth_code}: {e}")
            return False
        if found is None or not found[1]:
            logger.warning(f"[BARRIER] No addressable barrier for booth {booth_code}")
            return False

        device_id, ip_address = found
        budget = 2 * self.barrier_driver.timeout + self.barrier_driver.pulse_delay
        try:
            await asyncio.wait_for(self.barrier_driver.pulse(ip_address), timeout=budget)
        except asyncio.TimeoutError:
            logger.error(f"[BARRIER] {device_id} ({ip_address}) did not complete pulse within {budget}s")
            return False
        except UpstreamDeviceError as e:
            logger.error(f"[BARRIER] {device_id}: {e}")
            return False
        return True

    async def _deliver(self, booth_code: str, event: str, payload: dict, open_barrier: bool):
        if open_barrier:
            await self.pulse_barrier(booth_code)
        await self.notify(booth_code, DeviceRole.DISPLAY, event, payload)

    def dispatch_outcome(self, booth_code: Optional[str], event: str, payload: dict,
                         open_barrier: bool = False) -> Optional[asyncio.Task]:
        """Fire-and-forget delivery of a decision to the booth hardware."""
        if not booth_code:
            return None
        task = asyncio.create_task(
            self._deliver(booth_code, event, payload, open_barrier),
            name=f"outcome-{booth_code}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self):
        """Wait for in-flight deliveries (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


gateway = DeviceGateway(
    registry,
    BarrierDriver.from_settings(),
    send_timeout=settings.DISPLAY_SEND_TIMEOUT_SECONDS,
)


def get_gateway() -> DeviceGateway:
    """FastAPI dependency."""
    return gateway

# parkgate/services/barrier_driver.py
"""
Barrier relay driver. Pulses the alarm-out relay of the booth's barrier/ANPR
unit over HTTP with Digest auth:

  GET http://{ip}{BARRIER_ENGAGE_PATH}    → relay on (barrier lifts)
  wait BARRIER_PULSE_DELAY_SECONDS
  GET http://{ip}{BARRIER_RELEASE_PATH}   → relay off

Any transport error or non-200 is raised as UpstreamDeviceError.
"""

import asyncio
from typing import Optional

import httpx

from parkgate.config import settings
from parkgate.services.errors import UpstreamDeviceError
from parkgate.utils.logger import get_logger

logger = get_logger(__name__)


class BarrierDriver:
    def __init__(self, user: str, password: str, engage_path: str, release_path: str,
                 pulse_delay: float = 1.0, timeout: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.user = user
        self.password = password
        self.engage_path = engage_path
        self.release_path = release_path
        self.pulse_delay = pulse_delay
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "BarrierDriver":
        return cls(
            user=settings.BARRIER_USER,
            password=settings.BARRIER_PASSWORD,
            engage_path=settings.BARRIER_ENGAGE_PATH,
            release_path=settings.BARRIER_RELEASE_PATH,
            pulse_delay=settings.BARRIER_PULSE_DELAY_SECONDS,
            timeout=settings.BARRIER_TIMEOUT_SECONDS,
        )

    async def _command(self, client: httpx.AsyncClient, ip_address: str, path: str):
        response = await client.get(f"http://{ip_address}{path}", headers={"Accept": "application/json"})
        if response.status_code != 200:
            raise UpstreamDeviceError(f"Barrier {ip_address} returned HTTP {response.status_code}")

    async def pulse(self, ip_address: str):
        auth = httpx.DigestAuth(self.user, self.password)
        try:
            async with httpx.AsyncClient(auth=auth, timeout=self.timeout, transport=self._transport) as client:
                await self._command(client, ip_address, self.engage_path)
                await asyncio.sleep(self.pulse_delay)
                await self._command(client, ip_address, self.release_path)
        except httpx.HTTPError as e:
            raise UpstreamDeviceError(f"Barrier {ip_address} unreachable: {e.__class__.__name__}") from e
        logger.info(f"[BARRIER] Pulsed {ip_address}")

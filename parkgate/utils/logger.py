# parkgate/utils/logger.py
"""
Logging setup shared by every module: console + logs/parkgate.log.

Booth hardware traffic (barrier pulses, display pushes, socket churn, sweeps)
is also copied to logs/devices.log so a misbehaving booth can be traced
without wading through request logs.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from parkgate.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()
LOG_DIR = settings.LOG_DIR or os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")

DEVICE_LOGGERS = (
    "parkgate.services.barrier_driver",
    "parkgate.services.notification_gateway",
    "parkgate.services.connection_registry",
    "parkgate.routers.devices",
)

_FORMAT = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_configured = False


def _rotating(filename: str) -> RotatingFileHandler:
    # 10 × 5MB per file
    handler = RotatingFileHandler(
        filename=os.path.join(LOG_DIR, filename),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(_FORMAT)
    return handler


def _configure():
    global _configured
    if _configured:
        return
    _configured = True
    os.makedirs(LOG_DIR, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(LOG_LEVEL)
    console.setFormatter(_FORMAT)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(console)
    root.addHandler(_rotating("parkgate.log"))

    devices = _rotating("devices.log")
    for name in DEVICE_LOGGERS:
        logging.getLogger(name).addHandler(devices)

    # httpx logs every relay request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call as logger = get_logger(__name__)."""
    _configure()
    return logging.getLogger(name)

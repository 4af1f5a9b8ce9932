# parkgate/models/enums.py
"""String enums shared by the ORM models, schemas and services."""

import enum


class VehicleStatus(str, enum.Enum):
    PENDING = "pending"
    PARKED = "parked"
    EXITED = "exited"


class ClassStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    PENDING = "pending"


class RenewalType(str, enum.Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BoothType(str, enum.Enum):
    ENTRY = "entry"
    EXIT = "exit"


class BoothStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class DeviceRole(str, enum.Enum):
    DISPLAY = "display"
    CAMERA = "camera"
    BARRIER = "barrier"

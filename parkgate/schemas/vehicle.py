# parkgate/schemas/vehicle.py
from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Optional


class VehicleOut(BaseModel):
    id: int
    plate_number: str
    vehicle_type: Optional[str]
    owner_first_name: Optional[str]
    owner_last_name: Optional[str]
    class_code: str
    status: str
    is_blacklisted: bool
    registration_start: Optional[datetime]
    registration_end: Optional[datetime]
    renewal_type: Optional[str]
    renewal_charge: Optional[float]
    entry_time: Optional[datetime]
    last_exit_time: Optional[datetime]

    class Config:
        from_attributes = True


class BlacklistUpdate(BaseModel):
    is_blacklisted: bool


class VehicleUpdate(BaseModel):
    vehicle_type: Optional[str] = None
    owner_first_name: Optional[str] = None
    owner_last_name: Optional[str] = None
    class_code: Optional[str] = None
    renewal_type: Optional[str] = None
    renewal_charge: Optional[float] = None

    @field_validator("vehicle_type", mode="before")
    @classmethod
    def vehicle_type_as_text(cls, value):
        return str(value) if value is not None else None

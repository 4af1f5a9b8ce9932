# parkgate/schemas/parking.py
"""Request/response bodies for the booth validation endpoints."""

from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Optional


def _as_text(value):
    # Cameras send the vehicle type as a number ("4" and 4 are the same car)
    return str(value) if value is not None else None


class EntryValidateRequest(BaseModel):
    vehicle_no: Optional[str] = None
    entry_time: Optional[datetime] = None
    vehicle_type: Optional[str] = None
    booth_code: Optional[str] = None

    @field_validator("vehicle_type", mode="before")
    @classmethod
    def vehicle_type_as_text(cls, value):
        return _as_text(value)


class ExitValidateRequest(BaseModel):
    vehicle_no: Optional[str] = None
    is_paid: bool = False
    booth_code: Optional[str] = None


class ScreenMessage(BaseModel):
    screen_message_type: str
    screen_title: str
    screen_message: str
    barrier_status: str


class EntryValidateOut(ScreenMessage):
    max_waiting_duration: int
    entry_time: datetime
    class_code: str


class TariffOut(BaseModel):
    total_amount: float
    amount_payable: float


class ExitValidateOut(ScreenMessage):
    exit_time: datetime
    total_parking_duration: int      # seconds
    tariff: TariffOut
    class_code: str


class RegisterRequest(BaseModel):
    vehicle_no: Optional[str] = None
    vehicle_type: Optional[str] = None
    owner_first_name: Optional[str] = None
    owner_last_name: Optional[str] = None
    class_code: Optional[str] = None

    @field_validator("vehicle_type", mode="before")
    @classmethod
    def vehicle_type_as_text(cls, value):
        return _as_text(value)


class RegistrationOut(BaseModel):
    message: str
    registration_id: int
    vehicle_no: str
    vehicle_type: Optional[str]
    owner_first_name: Optional[str]
    owner_last_name: Optional[str]
    class_code: str
    starting_date: Optional[datetime]
    ending_date: Optional[datetime]
    renewal_type: Optional[str]
    renewal_charge: Optional[float]

# parkgate/schemas/ledger.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ParkingClassOut(BaseModel):
    code: str
    name: str
    slots_reserved: int
    slots_used: int
    status: str
    renewal_type: Optional[str]
    renewal_charge: Optional[float]
    starting_date: Optional[datetime]
    ending_date: Optional[datetime]
    days_to_expiry: int

    class Config:
        from_attributes = True


class PricingOut(BaseModel):
    vehicle_type: str
    first_hour_charge: float
    interval_minutes: int
    amount_per_interval: float

    class Config:
        from_attributes = True


class PublicSlotsOut(BaseModel):
    total: int
    occupied: int
    available: int


class LedgerOut(BaseModel):
    code: str
    name: Optional[str]
    total_parking_slots: int
    occupied_slots: int
    available_slots: int
    total_registered_users: int
    public_slots: PublicSlotsOut
    supported_classes: list[ParkingClassOut]
    pricing: list[PricingOut]
    is_consistent: bool
    last_maintenance_date: Optional[datetime]


class ParkingClassCreate(BaseModel):
    code: str
    name: str
    slots_reserved: int
    renewal_type: Optional[str] = None
    renewal_charge: Optional[float] = None
    status: Optional[str] = None
    starting_date: Optional[datetime] = None
    ending_date: Optional[datetime] = None


class ParkingClassUpdate(BaseModel):
    name: Optional[str] = None
    slots_reserved: Optional[int] = None
    status: Optional[str] = None
    renewal_type: Optional[str] = None
    renewal_charge: Optional[float] = None
    ending_date: Optional[datetime] = None

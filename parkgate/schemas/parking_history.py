# parkgate/schemas/parking_history.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ParkingHistoryOut(BaseModel):
    id: int
    plate_number: str
    class_code: str
    vehicle_type: Optional[str]
    entry_time: datetime
    exit_time: datetime
    parking_duration: int   # seconds
    gst: float
    total_amount: float
    discount_amount: float
    discount_percentage: float
    amount_payable: float

    class Config:
        from_attributes = True

# parkgate/models/parking_history.py
"""
Append-only record of completed parking sessions, one row per exit.
Written by settlement_service; never updated afterwards.
"""

from sqlalchemy import Column, Integer, String, DateTime, Float
from parkgate.database import Base


class ParkingHistory(Base):
    __tablename__ = "parking_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plate_number = Column(String(50), nullable=False, index=True)
    class_code = Column(String(100), nullable=False)
    vehicle_type = Column(String(10))
    entry_time = Column(DateTime, nullable=False)
    exit_time = Column(DateTime, nullable=False, index=True)
    parking_duration = Column(Integer, nullable=False)     # seconds
    gst = Column(Float, default=0, nullable=False)
    total_amount = Column(Float, default=0, nullable=False)
    discount_amount = Column(Float, default=0, nullable=False)
    discount_percentage = Column(Float, default=0, nullable=False)
    amount_payable = Column(Float, default=0, nullable=False)
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<ParkingHistory {self.id} plate={self.plate_number} payable={self.amount_payable}>"

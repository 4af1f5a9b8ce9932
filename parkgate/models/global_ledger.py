# parkgate/models/global_ledger.py
"""
Facility-wide capacity ledger (singleton row, looked up by code).
Holds the aggregate counters and the public-pool sub-ledger. Parking classes
and the pricing table hang off it. Only services/capacity_ledger.py mutates
the counters.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from parkgate.database import Base


class GlobalLedger(Base):
    __tablename__ = "global_ledger"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(200))
    total_parking_slots = Column(Integer, default=0, nullable=False)
    occupied_slots = Column(Integer, default=0, nullable=False)
    available_slots = Column(Integer, default=0, nullable=False)
    public_total = Column(Integer, default=0, nullable=False)
    public_occupied = Column(Integer, default=0, nullable=False)
    public_available = Column(Integer, default=0, nullable=False)
    total_registered_users = Column(Integer, default=0, nullable=False)
    last_maintenance_date = Column(DateTime)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    classes = relationship("ParkingClass", back_populates="ledger", order_by="ParkingClass.code")
    pricing = relationship("VehiclePricing", back_populates="ledger", order_by="VehiclePricing.vehicle_type")

    def __repr__(self):
        return (f"<GlobalLedger {self.code} occupied={self.occupied_slots}/{self.total_parking_slots} "
                f"public={self.public_occupied}/{self.public_total}>")

# parkgate/models/vehicle.py
"""
Vehicles by plate number, both subscribers and casual (public) visitors.
A public visitor is created on first entry with class_code="public".
status moves {pending, exited} → parked → exited; see services/vehicle_store.py.
"""

from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean
from parkgate.database import Base
from parkgate.models.enums import VehicleStatus


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plate_number = Column(String(50), unique=True, nullable=False, index=True)
    vehicle_type = Column(String(10))                      # "2" | "3" | "4" | "6"
    owner_first_name = Column(String(100))
    owner_last_name = Column(String(100))
    class_code = Column(String(100), nullable=False, default="public", index=True)
    registration_start = Column(DateTime)
    registration_end = Column(DateTime)
    renewal_type = Column(String(20))
    renewal_charge = Column(Float, default=0)
    status = Column(String(20), default=VehicleStatus.PENDING.value, nullable=False)
    is_blacklisted = Column(Boolean, default=False, nullable=False)
    entry_time = Column(DateTime)          # start of the current (or last) session
    last_exit_time = Column(DateTime)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<Vehicle {self.plate_number} class={self.class_code} status={self.status}>"

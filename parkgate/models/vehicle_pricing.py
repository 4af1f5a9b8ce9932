# parkgate/models/vehicle_pricing.py
"""Per-vehicle-type tariff rows: flat first hour, then a charge per started interval."""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from parkgate.database import Base


class VehiclePricing(Base):
    __tablename__ = "vehicle_pricing"
    __table_args__ = (UniqueConstraint("ledger_id", "vehicle_type", name="uq_pricing_ledger_type"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    ledger_id = Column(Integer, ForeignKey("global_ledger.id"), nullable=False, index=True)
    vehicle_type = Column(String(10), nullable=False)     # "2" | "3" | "4" | "6"
    first_hour_charge = Column(Float, nullable=False)
    interval_minutes = Column(Integer, nullable=False)
    amount_per_interval = Column(Float, nullable=False)

    ledger = relationship("GlobalLedger", back_populates="pricing")

    def __repr__(self):
        return (f"<VehiclePricing type={self.vehicle_type} first_hour={self.first_hour_charge} "
                f"{self.amount_per_interval}/{self.interval_minutes}min>")

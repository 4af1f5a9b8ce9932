# parkgate/models/parking_class.py
"""
Subscription classes: a block of reserved slots sold to one organisation.
Invariant: 0 <= slots_used <= slots_reserved (enforced by conditional updates
in the capacity ledger, not by this model).
"""

from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey
from sqlalchemy.orm import relationship
from parkgate.database import Base
from parkgate.models.enums import ClassStatus
from parkgate.utils.time_utils import utcnow


class ParkingClass(Base):
    __tablename__ = "parking_classes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ledger_id = Column(Integer, ForeignKey("global_ledger.id"), nullable=False, index=True)
    code = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    slots_reserved = Column(Integer, default=0, nullable=False)
    slots_used = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=ClassStatus.INACTIVE.value, nullable=False)
    renewal_type = Column(String(20))         # weekly | monthly | yearly
    renewal_charge = Column(Float, default=0)
    starting_date = Column(DateTime)
    ending_date = Column(DateTime)

    ledger = relationship("GlobalLedger", back_populates="classes")

    @property
    def is_active(self) -> bool:
        return self.status == ClassStatus.ACTIVE.value

    @property
    def days_to_expiry(self) -> int:
        if not self.ending_date:
            return 0
        return (self.ending_date - utcnow()).days

    def __repr__(self):
        return f"<ParkingClass {self.code} used={self.slots_used}/{self.slots_reserved} status={self.status}>"

# parkgate/models/booth.py
"""
Entry/exit booths and the devices attached to them (display, camera, barrier).
connection_id mirrors the live WebSocket handle of a device; it is set on
registration and cleared on disconnect or by the stale-connection sweep.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from parkgate.database import Base
from parkgate.models.enums import BoothStatus


class Booth(Base):
    __tablename__ = "booths"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booth_code = Column(String(50), unique=True, nullable=False, index=True)
    location = Column(String(200))
    description = Column(String(500))
    booth_type = Column(String(10), nullable=False)       # entry | exit
    status = Column(String(10), default=BoothStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime)

    devices = relationship("BoothDevice", back_populates="booth", order_by="BoothDevice.id")

    def device_for(self, role: str):
        """First attached device with this role, or None."""
        return next((d for d in self.devices if d.role == role), None)

    def __repr__(self):
        return f"<Booth {self.booth_code} type={self.booth_type} status={self.status}>"


class BoothDevice(Base):
    __tablename__ = "booth_devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booth_id = Column(Integer, ForeignKey("booths.id"), nullable=False, index=True)
    device_id = Column(String(100), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False)             # display | camera | barrier
    ip_address = Column(String(50))
    connection_id = Column(String(64), index=True)

    booth = relationship("Booth", back_populates="devices")

    def __repr__(self):
        return f"<BoothDevice {self.device_id} role={self.role} connected={bool(self.connection_id)}>"

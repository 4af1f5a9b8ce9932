# parkgate/services/booth_directory.py
"""Booth / device lookups used by the admission, settlement and device layers."""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from parkgate.models.booth import Booth, BoothDevice
from parkgate.models.enums import BoothStatus, BoothType
from parkgate.services.errors import NotFoundError, StateError, ValidationError


def find_booth(db: Session, booth_code: str) -> Optional[Booth]:
    """Booth codes are matched case-insensitively."""
    if not booth_code:
        return None
    return db.query(Booth).filter(func.lower(Booth.booth_code) == booth_code.strip().lower()).first()


def find_device(db: Session, device_id: str) -> Optional[BoothDevice]:
    return db.query(BoothDevice).filter(BoothDevice.device_id == device_id).first()


def require_booth(db: Session, booth_code: Optional[str], booth_type: BoothType) -> Booth:
    """Booth must exist, be active and be of the expected type."""
    if not booth_code or not booth_code.strip():
        raise ValidationError("Booth code is required.", title="Invalid Booth")
    booth = find_booth(db, booth_code)
    if booth is None:
        raise NotFoundError(f"Booth {booth_code} not found.", title="Invalid Booth")
    if booth.status != BoothStatus.ACTIVE.value:
        raise StateError(f"Booth {booth.booth_code} is inactive.", title="Booth Inactive", status_code=403)
    if booth.booth_type != booth_type.value:
        raise StateError(
            f"Booth {booth.booth_code} is an {booth.booth_type} booth, not {booth_type.value}.",
            title="Wrong Booth Type",
        )
    return booth

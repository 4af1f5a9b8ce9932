# parkgate/services/admission_service.py
"""
Entry validation at an entry booth.

Checks, first failure wins (nothing is mutated before the ledger reserve):
  1. booth exists, active, type=entry
  2. plate present
  3. not blacklisted, not already parked
  4. public / unknown vehicle → public pool slot; subscriber → its class slot
Then the vehicle is marked parked in the same transaction, and the barrier
pulse + display message are dispatched in the background.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from parkgate.config import settings
from parkgate.models.enums import BoothType, VehicleStatus
from parkgate.services import capacity_ledger, vehicle_store
from parkgate.services.booth_directory import require_booth
from parkgate.services.class_ref import PublicPool
from parkgate.services.errors import ConflictError, ParkingError, StateError, ValidationError
from parkgate.services.notification_gateway import DeviceGateway
from parkgate.services.transactions import run_in_transaction
from parkgate.utils.logger import get_logger
from parkgate.utils.time_utils import to_naive_utc, utcnow

logger = get_logger(__name__)


@dataclass
class EntryResult:
    vehicle_no: str
    class_code: str
    entry_time: datetime
    is_public: bool
    barrier_status: str = "open"

    def screen(self) -> dict:
        return {
            "screen_message_type": "success",
            "screen_title": "Public Vehicle Entry Validated" if self.is_public else "Vehicle Entry Validated",
            "screen_message": f"Vehicle {self.vehicle_no} has been validated for entry.",
            "barrier_status": self.barrier_status,
        }

    def as_response(self) -> dict:
        return {
            **self.screen(),
            "max_waiting_duration": settings.MAX_WAITING_DURATION,
            "entry_time": self.entry_time,
            "class_code": self.class_code,
        }


def _admit(db: Session, vehicle_no: Optional[str], booth_code: Optional[str],
           entry_time: Optional[datetime], vehicle_type: Optional[str]) -> EntryResult:
    require_booth(db, booth_code, BoothType.ENTRY)

    plate = vehicle_store.normalize_plate(vehicle_no)
    if not plate:
        raise ValidationError("No vehicle number found", title="Missing Vehicle Number")

    vehicle = vehicle_store.find_by_plate(db, plate)
    if vehicle is not None and vehicle.is_blacklisted:
        raise StateError(f"Vehicle {plate} is blacklisted and cannot enter.",
                         title="Access Denied", status_code=403)
    if vehicle is not None and vehicle.status == VehicleStatus.PARKED.value:
        raise ConflictError(f"Vehicle {plate} is already parked.", title="Duplicate Entry")

    class_ref = vehicle_store.class_ref_of(vehicle)
    capacity_ledger.reserve(db, class_ref)

    started = to_naive_utc(entry_time) or utcnow()
    vehicle = vehicle_store.upsert_on_entry(db, plate, class_ref, started, vehicle_type)

    return EntryResult(
        vehicle_no=plate,
        class_code=class_ref.code,
        entry_time=started,
        is_public=isinstance(class_ref, PublicPool),
    )


async def validate_entry(db: Session, gateway: DeviceGateway, vehicle_no: Optional[str],
                         booth_code: Optional[str], entry_time: Optional[datetime] = None,
                         vehicle_type: Optional[str] = None) -> EntryResult:
    try:
        result = run_in_transaction(
            db, lambda: _admit(db, vehicle_no, booth_code, entry_time, vehicle_type), label="ENTRY")
    except ParkingError as exc:
        logger.warning(f"[ENTRY] Rejected plate={vehicle_no} booth={booth_code}: {exc.screen_title}: {exc.message}")
        gateway.dispatch_outcome(booth_code, "failed", exc.to_screen())
        raise

    logger.info(f"[ENTRY] Admitted plate={result.vehicle_no} class={result.class_code} booth={booth_code}")
    gateway.dispatch_outcome(booth_code, "success", result.screen(), open_barrier=True)
    return result

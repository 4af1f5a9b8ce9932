# parkgate/services/capacity_ledger.py
"""
Capacity ledger: the only code allowed to move slot counters.

Every reserve/release is a single conditional UPDATE (increment-with-precondition),
so two booths racing for the last slot can never both win:

    UPDATE parking_classes SET slots_used = slots_used + 1
     WHERE code = :code AND status = 'active' AND slots_used < slots_reserved

The facility-wide counters are moved in the same transaction as the pool counter.
Callers commit (see services/transactions.py); we only flush.

Invariant kept after every committed entry/exit:
    occupied_slots == sum(class.slots_used) + public_occupied
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from parkgate.config import settings
from parkgate.models.enums import ClassStatus
from parkgate.models.global_ledger import GlobalLedger
from parkgate.models.parking_class import ParkingClass
from parkgate.services.class_ref import ClassRef, PublicPool
from parkgate.services.errors import CapacityError, ConfigurationError, NotFoundError, StateError
from parkgate.utils.logger import get_logger
from parkgate.utils.time_utils import utcnow

logger = get_logger(__name__)


def get_ledger(db: Session) -> GlobalLedger:
    ledger = db.query(GlobalLedger).filter(GlobalLedger.code == settings.LEDGER_CODE).first()
    if not ledger:
        raise ConfigurationError("Global parking data is not initialized.")
    return ledger


def find_class(db: Session, code: str) -> Optional[ParkingClass]:
    return db.query(ParkingClass).filter(ParkingClass.code == code).first()


def _sync(db: Session):
    """Bulk UPDATEs bypass the identity map; flush pending work, then reload on next access."""
    db.flush()
    db.expire_all()


def _occupy_facility(db: Session, ledger_id: int, delta: int) -> int:
    q = db.query(GlobalLedger).filter(GlobalLedger.id == ledger_id)
    if delta < 0:
        q = q.filter(GlobalLedger.occupied_slots >= -delta)
    return q.update({
        GlobalLedger.occupied_slots: GlobalLedger.occupied_slots + delta,
        GlobalLedger.available_slots: GlobalLedger.total_parking_slots - GlobalLedger.occupied_slots - delta,
        GlobalLedger.updated_at: utcnow(),
    }, synchronize_session=False)


def reserve(db: Session, ref: ClassRef) -> None:
    """Take one slot from the public pool or a named class, or raise why not."""
    ledger = get_ledger(db)

    if isinstance(ref, PublicPool):
        won = db.query(GlobalLedger).filter(
            GlobalLedger.id == ledger.id,
            GlobalLedger.public_occupied < GlobalLedger.public_total,
        ).update({
            GlobalLedger.public_occupied: GlobalLedger.public_occupied + 1,
            GlobalLedger.public_available: GlobalLedger.public_total - GlobalLedger.public_occupied - 1,
            GlobalLedger.occupied_slots: GlobalLedger.occupied_slots + 1,
            GlobalLedger.available_slots: GlobalLedger.total_parking_slots - GlobalLedger.occupied_slots - 1,
            GlobalLedger.updated_at: utcnow(),
        }, synchronize_session=False)
        _sync(db)
        if not won:
            raise CapacityError(
                "No available public parking slots for vehicles with public class.",
                title="No Public Slots Available",
            )
        logger.info(f"[LEDGER] +1 public → {ledger.public_occupied}/{ledger.public_total}")
        return

    won = db.query(ParkingClass).filter(
        ParkingClass.code == ref.code,
        ParkingClass.status == ClassStatus.ACTIVE.value,
        ParkingClass.slots_used < ParkingClass.slots_reserved,
    ).update({ParkingClass.slots_used: ParkingClass.slots_used + 1}, synchronize_session=False)

    if not won:
        _sync(db)
        parking_class = find_class(db, ref.code)
        if parking_class is None:
            raise NotFoundError(f"Class code {ref.code} is not supported.", title="Invalid Class Code")
        if not parking_class.is_active:
            raise StateError(
                f'Class {ref.code} is "{parking_class.status}", not active.',
                title="Class Inactive", status_code=403,
            )
        raise CapacityError(f"No parking slots available for class {ref.code}.", title="Class Full")

    _occupy_facility(db, ledger.id, +1)
    _sync(db)
    parking_class = find_class(db, ref.code)
    logger.info(f"[LEDGER] +1 {ref.code} → {parking_class.slots_used}/{parking_class.slots_reserved}")


def release(db: Session, ref: ClassRef) -> bool:
    """
    Give one slot back. Never goes below zero: if the pool counter is already
    at zero nothing moves (including the facility counter) and False is returned.
    """
    ledger = get_ledger(db)

    if isinstance(ref, PublicPool):
        freed = db.query(GlobalLedger).filter(
            GlobalLedger.id == ledger.id,
            GlobalLedger.public_occupied > 0,
            GlobalLedger.occupied_slots > 0,
        ).update({
            GlobalLedger.public_occupied: GlobalLedger.public_occupied - 1,
            GlobalLedger.public_available: GlobalLedger.public_total - GlobalLedger.public_occupied + 1,
            GlobalLedger.occupied_slots: GlobalLedger.occupied_slots - 1,
            GlobalLedger.available_slots: GlobalLedger.total_parking_slots - GlobalLedger.occupied_slots + 1,
            GlobalLedger.updated_at: utcnow(),
        }, synchronize_session=False)
    else:
        freed = db.query(ParkingClass).filter(
            ParkingClass.code == ref.code,
            ParkingClass.slots_used > 0,
        ).update({ParkingClass.slots_used: ParkingClass.slots_used - 1}, synchronize_session=False)
        if freed:
            _occupy_facility(db, ledger.id, -1)

    _sync(db)
    if not freed:
        logger.warning(f"[LEDGER] release of {ref} skipped, counter already at zero")
        return False
    logger.info(f"[LEDGER] -1 {ref}")
    return True


def transfer(db: Session, source: ClassRef, target: ClassRef) -> None:
    """Move a parked vehicle's slot between pools (e.g. public → class on registration)."""
    if source == target:
        return
    reserve(db, target)
    release(db, source)


def count_registration(db: Session) -> None:
    ledger = get_ledger(db)
    db.query(GlobalLedger).filter(GlobalLedger.id == ledger.id).update(
        {GlobalLedger.total_registered_users: GlobalLedger.total_registered_users + 1},
        synchronize_session=False,
    )
    _sync(db)


def classes_in_use(db: Session, ledger_id: int) -> int:
    return db.query(func.coalesce(func.sum(ParkingClass.slots_used), 0)).filter(
        ParkingClass.ledger_id == ledger_id).scalar()


def is_consistent(db: Session, ledger: GlobalLedger) -> bool:
    """occupied == sum(class.slots_used) + public_occupied, and every class within bounds."""
    out_of_bounds = db.query(func.count(ParkingClass.id)).filter(
        ParkingClass.ledger_id == ledger.id,
        (ParkingClass.slots_used < 0) | (ParkingClass.slots_used > ParkingClass.slots_reserved),
    ).scalar()
    return (
        out_of_bounds == 0
        and ledger.occupied_slots == classes_in_use(db, ledger.id) + ledger.public_occupied
        and ledger.available_slots == ledger.total_parking_slots - ledger.occupied_slots
    )

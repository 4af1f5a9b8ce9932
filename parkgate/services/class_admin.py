# parkgate/services/class_admin.py
"""
Subscription class administration: add, edit and remove classes on the ledger.

slots_used is never written here; it belongs to reserve/release. Edits are
guarded so that a class can never be shrunk below the slots it has in use,
and a class with parked members cannot be deleted. After every change the
reserved blocks plus the public pool must still fit in the facility.
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from parkgate.models.enums import ClassStatus, RenewalType
from parkgate.models.parking_class import ParkingClass
from parkgate.services import capacity_ledger
from parkgate.services.class_ref import PUBLIC_CODE
from parkgate.services.errors import CapacityError, ConflictError, NotFoundError, ValidationError
from parkgate.services.transactions import run_in_transaction
from parkgate.utils.logger import get_logger
from parkgate.utils.time_utils import renewal_window_end, to_naive_utc, utcnow

logger = get_logger(__name__)

_STATUSES = {s.value for s in ClassStatus}
_RENEWALS = {r.value for r in RenewalType}


def _check_renewal(renewal_type: Optional[str]):
    if renewal_type is not None and renewal_type not in _RENEWALS:
        raise ValidationError(f'Unknown renewal type "{renewal_type}"', title="Invalid Class Data")


def _check_status(status: Optional[str]):
    if status is not None and status not in _STATUSES:
        raise ValidationError(f'Unknown class status "{status}"', title="Invalid Class Data")


def _ensure_fits(db: Session, ledger):
    reserved = db.query(func.coalesce(func.sum(ParkingClass.slots_reserved), 0)).filter(
        ParkingClass.ledger_id == ledger.id).scalar()
    if reserved + ledger.public_total > ledger.total_parking_slots:
        raise CapacityError(
            f"Reserved slots ({reserved}) plus public slots ({ledger.public_total}) exceed "
            f"the facility capacity of {ledger.total_parking_slots}.",
            title="Capacity Exceeded",
        )


def _find_class_ci(db: Session, code: str) -> Optional[ParkingClass]:
    return db.query(ParkingClass).filter(func.lower(ParkingClass.code) == code.strip().lower()).first()


def _create(db: Session, payload: dict) -> ParkingClass:
    code = str(payload.get("code") or "").strip()
    name = str(payload.get("name") or "").strip()
    slots_reserved = payload.get("slots_reserved")
    renewal_type = payload.get("renewal_type")
    renewal_charge = payload.get("renewal_charge")

    if not code or not name or slots_reserved is None:
        raise ValidationError("code, name and slots_reserved are required.", title="Invalid Class Data")
    if code.lower() == PUBLIC_CODE:
        raise ValidationError(f'"{PUBLIC_CODE}" is reserved for the public pool.', title="Invalid Class Data")
    if slots_reserved < 0:
        raise ValidationError("Slots values cannot be negative.", title="Invalid Class Data")
    if not renewal_type or renewal_charge is None:
        raise ValidationError("Renewal type and renewal charge must be specified for the class.",
                              title="Invalid Class Data")
    _check_renewal(renewal_type)
    status = payload.get("status") or ClassStatus.ACTIVE.value
    _check_status(status)

    ledger = capacity_ledger.get_ledger(db)
    if _find_class_ci(db, code) is not None:
        raise ConflictError(f'Class with code "{code}" already exists.', title="Duplicate Class")

    starting = to_naive_utc(payload.get("starting_date")) or utcnow()
    parking_class = ParkingClass(
        ledger_id=ledger.id,
        code=code,
        name=name,
        slots_reserved=slots_reserved,
        slots_used=0,
        status=status,
        renewal_type=renewal_type,
        renewal_charge=renewal_charge,
        starting_date=starting,
        ending_date=to_naive_utc(payload.get("ending_date")) or renewal_window_end(starting, renewal_type),
    )
    db.add(parking_class)
    db.flush()
    _ensure_fits(db, ledger)
    logger.info(f"[LEDGER] Added class {code} with {slots_reserved} slots")
    return parking_class


def _update(db: Session, code: str, changes: dict) -> ParkingClass:
    changes = {k: v for k, v in changes.items() if v is not None}
    _check_renewal(changes.get("renewal_type"))
    _check_status(changes.get("status"))

    ledger = capacity_ledger.get_ledger(db)
    parking_class = _find_class_ci(db, code)
    if parking_class is None:
        raise NotFoundError(f'Class "{code}" not found.', title="Class Not Found")
    class_code = parking_class.code

    values = {}
    for name in ("name", "status", "renewal_type", "renewal_charge"):
        if name in changes:
            values[getattr(ParkingClass, name)] = changes[name]
    if "ending_date" in changes:
        values[ParkingClass.ending_date] = to_naive_utc(changes["ending_date"])
    elif "renewal_type" in changes:
        start = parking_class.starting_date or utcnow()
        values[ParkingClass.ending_date] = renewal_window_end(start, changes["renewal_type"])

    q = db.query(ParkingClass).filter(ParkingClass.id == parking_class.id)
    if "slots_reserved" in changes:
        new_reserved = changes["slots_reserved"]
        if new_reserved < 0:
            raise ValidationError("Slots values cannot be negative.", title="Invalid Class Data")
        values[ParkingClass.slots_reserved] = new_reserved
        q = q.filter(ParkingClass.slots_used <= new_reserved)

    if not values:
        raise ValidationError("No fields to update were provided.", title="Nothing To Update")

    updated = q.update(values, synchronize_session=False)
    db.flush()
    db.expire_all()
    if not updated:
        current = capacity_ledger.find_class(db, class_code)
        if current is None:
            raise NotFoundError(f'Class "{code}" not found.', title="Class Not Found")
        raise CapacityError(
            f"Slots reserved cannot be lower than the {current.slots_used} slots currently in use.",
            title="Slots In Use",
        )
    _ensure_fits(db, ledger)
    logger.info(f"[LEDGER] Updated class {class_code}: {sorted(changes)}")
    return capacity_ledger.find_class(db, class_code)


def _delete(db: Session, code: str) -> str:
    capacity_ledger.get_ledger(db)
    parking_class = _find_class_ci(db, code)
    if parking_class is None:
        raise NotFoundError(f'Class "{code}" not found.', title="Class Not Found")
    class_code = parking_class.code

    deleted = db.query(ParkingClass).filter(
        ParkingClass.id == parking_class.id,
        ParkingClass.slots_used == 0,
    ).delete(synchronize_session=False)
    if not deleted:
        raise ConflictError(
            f'Class "{class_code}" still has parked vehicles and cannot be deleted.',
            title="Class In Use",
        )
    logger.info(f"[LEDGER] Deleted class {class_code}")
    return class_code


def add_class(db: Session, payload: dict) -> ParkingClass:
    parking_class = run_in_transaction(db, lambda: _create(db, payload), label="LEDGER")
    db.refresh(parking_class)
    return parking_class


def update_class(db: Session, code: str, changes: dict) -> ParkingClass:
    parking_class = run_in_transaction(db, lambda: _update(db, code, changes), label="LEDGER")
    db.refresh(parking_class)
    return parking_class


def delete_class(db: Session, code: str) -> str:
    return run_in_transaction(db, lambda: _delete(db, code), label="LEDGER")

# parkgate/services/vehicle_store.py
"""
Vehicle lifecycle store: lookup by plate and the parked/exited transitions.

Transitions are conditional UPDATEs so two booths reading the same plate at
once cannot both move it:
    {pending, exited} → parked   (WHERE status != 'parked')
    parked → exited              (WHERE status = 'parked')
    class change                 (WHERE class_code and status are still as read)
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from parkgate.models.enums import VehicleStatus
from parkgate.models.vehicle import Vehicle
from parkgate.services.class_ref import ClassRef, NamedClass, PublicPool, parse_class_ref
from parkgate.services.errors import ConflictError, StaleRecordError, StateError
from parkgate.utils.logger import get_logger
from parkgate.utils.time_utils import utcnow

logger = get_logger(__name__)


def normalize_plate(plate_number: Optional[str]) -> str:
    return (plate_number or "").strip().upper()


def find_by_plate(db: Session, plate_number: str) -> Optional[Vehicle]:
    """Find a vehicle by plate number. Returns None if not found."""
    return db.query(Vehicle).filter(Vehicle.plate_number == normalize_plate(plate_number)).first()


def class_ref_of(vehicle: Optional[Vehicle]) -> ClassRef:
    return parse_class_ref(vehicle.class_code if vehicle else None)


def upsert_on_entry(db: Session, plate_number: str, class_ref: ClassRef,
                    entry_time: datetime, vehicle_type: Optional[str] = None) -> Vehicle:
    """
    Mark a vehicle parked, creating a public record on first sight.
    An existing public record handed a named class is promoted in place;
    a record already in a different named class is a conflict.
    """
    plate = normalize_plate(plate_number)
    now = utcnow()
    vehicle = find_by_plate(db, plate)

    if vehicle is None:
        vehicle = Vehicle(
            plate_number=plate,
            vehicle_type=vehicle_type,
            class_code=class_ref.code,
            status=VehicleStatus.PARKED.value,
            entry_time=entry_time,
            registration_start=now,
            renewal_charge=0,
            created_at=now,
            updated_at=now,
        )
        db.add(vehicle)
        db.flush()
        logger.info(f"[ENTRY] New {class_ref} vehicle record for {plate}")
        return vehicle

    current = class_ref_of(vehicle)
    changes = {
        Vehicle.status: VehicleStatus.PARKED.value,
        Vehicle.entry_time: entry_time,
        Vehicle.updated_at: now,
    }
    if isinstance(class_ref, NamedClass) and current != class_ref:
        if not isinstance(current, PublicPool):
            raise ConflictError(
                f'Vehicle {plate} already belongs to class "{current}".', title="Class Conflict")
        changes[Vehicle.class_code] = class_ref.code
    if vehicle_type and not vehicle.vehicle_type:
        changes[Vehicle.vehicle_type] = vehicle_type

    moved = db.query(Vehicle).filter(
        Vehicle.id == vehicle.id,
        Vehicle.status != VehicleStatus.PARKED.value,
    ).update(changes, synchronize_session=False)
    db.flush()
    db.expire(vehicle)
    if not moved:
        raise ConflictError(f"Vehicle {plate} is already parked.", title="Duplicate Entry")
    return vehicle


def mark_exited(db: Session, vehicle: Vehicle, exit_time: datetime) -> Vehicle:
    moved = db.query(Vehicle).filter(
        Vehicle.id == vehicle.id,
        Vehicle.status == VehicleStatus.PARKED.value,
    ).update({
        Vehicle.status: VehicleStatus.EXITED.value,
        Vehicle.last_exit_time: exit_time,
        Vehicle.updated_at: utcnow(),
    }, synchronize_session=False)
    db.flush()
    db.expire(vehicle)
    if not moved:
        raise StateError(f"Vehicle {vehicle.plate_number} has already exited.", title="Already Exited")
    return vehicle


def reassign(db: Session, vehicle_id: int, class_ref: ClassRef,
             observed_class_code: str, observed_status: str, **fields) -> int:
    """
    Move a vehicle to another class (registration, promotion, admin edit).

    Guarded on the class and status read by the caller: the caller decided
    whether a parked slot had to move based on them, so if either changed in
    the meantime the decision is void and StaleRecordError re-runs it.
    """
    values = {getattr(Vehicle, name): value for name, value in fields.items()}
    values[Vehicle.class_code] = class_ref.code
    values[Vehicle.updated_at] = utcnow()
    moved = db.query(Vehicle).filter(
        Vehicle.id == vehicle_id,
        Vehicle.class_code == observed_class_code,
        Vehicle.status == observed_status,
    ).update(values, synchronize_session=False)
    db.flush()
    db.expire_all()
    if not moved:
        raise StaleRecordError(f"Vehicle {vehicle_id} changed class or status while being reassigned")
    return moved


def set_blacklisted(db: Session, vehicle: Vehicle, is_blacklisted: bool) -> Vehicle:
    vehicle.is_blacklisted = is_blacklisted
    vehicle.updated_at = utcnow()
    db.commit()
    logger.warning(f"[VEHICLE] {vehicle.plate_number} blacklisted={is_blacklisted}")
    return vehicle

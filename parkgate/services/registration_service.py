# parkgate/services/registration_service.py
"""
Vehicle registration into a subscription class (or as a public visitor),
and later edits of a registration.

A plate already on file as "public" is promoted in place. Whenever a vehicle
changes class while parked, its slot moves to the new pool in the same
transaction. A plate already in a named class cannot be re-registered.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from parkgate.models.enums import RenewalType, VehicleStatus
from parkgate.models.vehicle import Vehicle
from parkgate.services import capacity_ledger, vehicle_store
from parkgate.services.class_ref import ClassRef, NamedClass, PublicPool, parse_class_ref
from parkgate.services.errors import ConflictError, NotFoundError, ValidationError
from parkgate.services.transactions import run_in_transaction
from parkgate.utils.logger import get_logger
from parkgate.utils.time_utils import renewal_window_end, utcnow

logger = get_logger(__name__)

REQUIRED_FIELDS = ("vehicle_no", "vehicle_type", "owner_first_name", "owner_last_name", "class_code")
EDITABLE_FIELDS = ("vehicle_type", "owner_first_name", "owner_last_name", "class_code",
                   "renewal_type", "renewal_charge")


@dataclass
class RegistrationResult:
    vehicle: Vehicle
    created: bool
    message: str

    def as_response(self) -> dict:
        v = self.vehicle
        return {
            "message": self.message,
            "registration_id": v.id,
            "vehicle_no": v.plate_number,
            "vehicle_type": v.vehicle_type,
            "owner_first_name": v.owner_first_name,
            "owner_last_name": v.owner_last_name,
            "class_code": v.class_code,
            "starting_date": v.registration_start,
            "ending_date": v.registration_end,
            "renewal_type": v.renewal_type,
            "renewal_charge": v.renewal_charge,
        }


def _subscription_terms(db: Session, class_ref: ClassRef) -> dict:
    """Renewal window for the class, or no terms for public visitors."""
    now = utcnow()
    if isinstance(class_ref, PublicPool):
        return {"renewal_type": None, "renewal_charge": 0, "registration_start": now, "registration_end": None}

    parking_class = capacity_ledger.find_class(db, class_ref.code)
    if parking_class is None:
        raise ValidationError(f'Invalid class code "{class_ref.code}". Please choose a valid class.',
                              title="Invalid Class Code")
    if not parking_class.is_active:
        raise ValidationError(
            f'The class status is "{parking_class.status}", which is not active. Vehicle cannot be registered.',
            title="Class Inactive",
        )
    return {
        "renewal_type": parking_class.renewal_type,
        "renewal_charge": parking_class.renewal_charge or 0,
        "registration_start": now,
        "registration_end": renewal_window_end(now, parking_class.renewal_type),
    }


def _move_to_class(db: Session, vehicle: Vehicle, target: ClassRef, **fields) -> None:
    # Read once: the slot decision below and the guarded write must agree
    vehicle_id, observed_class, observed_status = vehicle.id, vehicle.class_code, vehicle.status
    current = parse_class_ref(observed_class)

    if observed_status == VehicleStatus.PARKED.value and current != target:
        capacity_ledger.transfer(db, current, target)
    vehicle_store.reassign(db, vehicle_id, target, observed_class, observed_status, **fields)
    if isinstance(target, NamedClass) and not isinstance(current, NamedClass):
        capacity_ledger.count_registration(db)


def _register(db: Session, payload: dict) -> RegistrationResult:
    missing = [name for name in REQUIRED_FIELDS if not str(payload.get(name) or "").strip()]
    if missing:
        raise ValidationError(f"All fields are required. Missing: {', '.join(missing)}",
                              title="Missing Fields")

    capacity_ledger.get_ledger(db)
    plate = vehicle_store.normalize_plate(payload["vehicle_no"])
    class_ref = parse_class_ref(payload["class_code"])
    terms = _subscription_terms(db, class_ref)
    owner = {
        "owner_first_name": payload["owner_first_name"].strip(),
        "owner_last_name": payload["owner_last_name"].strip(),
    }

    existing = vehicle_store.find_by_plate(db, plate)
    if existing is not None:
        current = vehicle_store.class_ref_of(existing)
        if isinstance(current, NamedClass):
            same_owner = (existing.owner_first_name, existing.owner_last_name) == (
                owner["owner_first_name"], owner["owner_last_name"])
            if current == class_ref and same_owner:
                return RegistrationResult(existing, False, f"Vehicle {plate} is already registered as {current}.")
            raise ConflictError(
                f'A vehicle with the registration number "{plate}" already exists in class "{current}". '
                f"Please verify the number.",
                title="Duplicate Registration",
            )

        _move_to_class(db, existing, class_ref, vehicle_type=str(payload["vehicle_type"]), **owner, **terms)
        logger.info(f"[REGISTER] Promoted {plate} public → {class_ref}")
        return RegistrationResult(vehicle_store.find_by_plate(db, plate), False,
                                  f"Vehicle {plate} successfully registered as {class_ref}.")

    now = utcnow()
    vehicle = Vehicle(
        plate_number=plate,
        vehicle_type=str(payload["vehicle_type"]),
        class_code=class_ref.code,
        status=VehicleStatus.PENDING.value,
        created_at=now,
        updated_at=now,
        **owner,
        **terms,
    )
    db.add(vehicle)
    db.flush()
    if isinstance(class_ref, NamedClass):
        capacity_ledger.count_registration(db)
    logger.info(f"[REGISTER] New vehicle {plate} in class {class_ref}")
    return RegistrationResult(vehicle, True, f"Vehicle {plate} registered.")


async def register_vehicle(db: Session, payload: dict) -> RegistrationResult:
    result = run_in_transaction(db, lambda: _register(db, payload), label="REGISTER")
    db.refresh(result.vehicle)
    return result


def _update(db: Session, plate_number: str, changes: dict) -> RegistrationResult:
    changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
    for name in ("vehicle_type", "owner_first_name", "owner_last_name", "class_code", "renewal_type"):
        if name in changes:
            changes[name] = str(changes[name]).strip()
            if not changes[name]:
                raise ValidationError(f"{name} cannot be blank", title="Invalid Field")
    if not changes:
        raise ValidationError("No fields to update were provided.", title="Nothing To Update")

    plate = vehicle_store.normalize_plate(plate_number)
    vehicle = vehicle_store.find_by_plate(db, plate)
    if vehicle is None:
        raise NotFoundError("Vehicle not found with the provided details", title="Vehicle Not Found")

    current = vehicle_store.class_ref_of(vehicle)
    target = parse_class_ref(changes.pop("class_code")) if "class_code" in changes else current
    fields = dict(changes)

    if target != current:
        # A new class brings its own terms; explicit renewal edits still win
        fields = {**_subscription_terms(db, target), **fields}
    if "renewal_type" in changes:
        if changes["renewal_type"] not in {r.value for r in RenewalType}:
            raise ValidationError(f'Unknown renewal type "{changes["renewal_type"]}"', title="Invalid Field")
        start = fields.get("registration_start") or vehicle.registration_start or utcnow()
        fields["registration_end"] = renewal_window_end(start, changes["renewal_type"])

    _move_to_class(db, vehicle, target, **fields)
    logger.info(f"[REGISTER] Updated {plate} ({current} → {target}): {sorted(changes)}")
    return RegistrationResult(vehicle_store.find_by_plate(db, plate), False, f"Vehicle {plate} updated.")


async def update_vehicle(db: Session, plate_number: str, changes: dict) -> RegistrationResult:
    result = run_in_transaction(db, lambda: _update(db, plate_number, changes), label="REGISTER")
    db.refresh(result.vehicle)
    return result


def set_blacklist(db: Session, plate_number: str, is_blacklisted: bool) -> Optional[Vehicle]:
    vehicle = vehicle_store.find_by_plate(db, plate_number)
    if vehicle is None:
        return None
    return vehicle_store.set_blacklisted(db, vehicle, is_blacklisted)

# parkgate/services/settlement_service.py
"""
Exit validation and tariff settlement at an exit booth.

  1. booth exists, active, type=exit
  2. vehicle known, not blacklisted, currently parked
  3. tariff from entry_time → now for the vehicle type (car when unpriced)
  4. active subscription class → free; otherwise the tariff is due unless is_paid
  5. anything still due → PaymentRequired, nothing mutated
  6. release slot, append history, mark exited (one transaction), then
     pulse barrier + notify display in the background
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from parkgate.config import settings
from parkgate.models.enums import BoothType, VehicleStatus
from parkgate.models.parking_history import ParkingHistory
from parkgate.services import capacity_ledger, vehicle_store
from parkgate.services.booth_directory import require_booth
from parkgate.services.class_ref import NamedClass
from parkgate.services.errors import (
    NotFoundError, ParkingError, PaymentRequiredError, StateError, ValidationError,
)
from parkgate.services.notification_gateway import DeviceGateway
from parkgate.services.tariff_engine import (
    TariffBreakdown, compute_tariff, load_pricing_table, resolve_vehicle_type,
)
from parkgate.services.transactions import run_in_transaction
from parkgate.utils.logger import get_logger
from parkgate.utils.time_utils import utcnow

logger = get_logger(__name__)


@dataclass
class ExitResult:
    vehicle_no: str
    class_code: str
    entry_time: datetime
    exit_time: datetime
    tariff: TariffBreakdown
    amount_payable: float
    barrier_status: str = "open"

    def screen(self) -> dict:
        return {
            "screen_message_type": "success",
            "screen_title": "Thank You!",
            "screen_message": "Vehicle Verified. Thank you for coming!",
            "barrier_status": self.barrier_status,
        }

    def as_response(self) -> dict:
        return {
            **self.screen(),
            "exit_time": self.exit_time,
            "total_parking_duration": self.tariff.duration_seconds,
            "tariff": {"total_amount": self.tariff.total_amount, "amount_payable": self.amount_payable},
            "class_code": self.class_code,
        }


def _settle(db: Session, vehicle_no: Optional[str], booth_code: Optional[str],
            is_paid: bool, exit_time: Optional[datetime]) -> ExitResult:
    require_booth(db, booth_code, BoothType.EXIT)

    plate = vehicle_store.normalize_plate(vehicle_no)
    if not plate:
        raise ValidationError("No vehicle number found", title="Missing Vehicle Number")

    vehicle = vehicle_store.find_by_plate(db, plate)
    if vehicle is None:
        raise NotFoundError("Vehicle not found", title="Vehicle Not Found")
    if vehicle.is_blacklisted:
        raise StateError("Vehicle is blacklisted and cannot exit", title="Access Denied", status_code=403)
    if vehicle.status == VehicleStatus.EXITED.value:
        raise StateError("Vehicle has already exited", title="Already Exited")
    if vehicle.status != VehicleStatus.PARKED.value:
        raise StateError("Vehicle is not currently parked", title="Not Parked")

    ledger = capacity_ledger.get_ledger(db)
    exited_at = exit_time or utcnow()
    entered_at = vehicle.entry_time or exited_at

    pricing = load_pricing_table(db, ledger.id)
    vehicle_type = resolve_vehicle_type(vehicle.vehicle_type, pricing, settings.DEFAULT_VEHICLE_TYPE)
    tariff = compute_tariff(entered_at, exited_at, vehicle_type, pricing)

    class_ref = vehicle_store.class_ref_of(vehicle)
    if isinstance(class_ref, NamedClass):
        parking_class = capacity_ledger.find_class(db, class_ref.code)
        if parking_class is None:
            raise NotFoundError(f'Class code "{class_ref.code}" not found', title="Invalid Class Code")
        subscribed = parking_class.is_active
    else:
        subscribed = False

    amount_due = 0 if subscribed or is_paid else tariff.total_amount
    if amount_due > 0:
        raise PaymentRequiredError(
            "Please pay the parking fee to exit.",
            extra={"tariff": {"total_amount": tariff.total_amount, "amount_payable": amount_due}},
        )

    capacity_ledger.release(db, class_ref)
    db.add(ParkingHistory(
        plate_number=plate,
        class_code=class_ref.code,
        vehicle_type=vehicle_type,
        entry_time=entered_at,
        exit_time=exited_at,
        parking_duration=tariff.duration_seconds,
        gst=0,
        total_amount=tariff.total_amount,
        discount_amount=0,
        discount_percentage=0,
        amount_payable=amount_due,
        created_at=utcnow(),
    ))
    vehicle_store.mark_exited(db, vehicle, exited_at)

    return ExitResult(
        vehicle_no=plate,
        class_code=class_ref.code,
        entry_time=entered_at,
        exit_time=exited_at,
        tariff=tariff,
        amount_payable=amount_due,
    )


async def validate_exit(db: Session, gateway: DeviceGateway, vehicle_no: Optional[str],
                        booth_code: Optional[str], is_paid: bool = False,
                        exit_time: Optional[datetime] = None) -> ExitResult:
    try:
        result = run_in_transaction(
            db, lambda: _settle(db, vehicle_no, booth_code, bool(is_paid), exit_time), label="EXIT")
    except PaymentRequiredError as exc:
        logger.info(f"[EXIT] Payment required plate={vehicle_no} booth={booth_code}: {exc.extra['tariff']}")
        gateway.dispatch_outcome(booth_code, "failed", exc.to_screen())
        raise
    except ParkingError as exc:
        logger.warning(f"[EXIT] Rejected plate={vehicle_no} booth={booth_code}: {exc.screen_title}: {exc.message}")
        gateway.dispatch_outcome(booth_code, "failed", exc.to_screen())
        raise

    logger.info(
        f"[EXIT] Settled plate={result.vehicle_no} class={result.class_code} "
        f"parked {result.tariff.duration_minutes} min, tariff={result.tariff.total_amount} "
        f"payable={result.amount_payable}"
    )
    gateway.dispatch_outcome(booth_code, "success", result.screen(), open_barrier=True)
    return result

# parkgate/services/tariff_engine.py
"""
Parking tariff calculation.

  duration_minutes = ceil(floor(exit - entry in seconds) / 60)
  <= 60 min  → first-hour flat charge
  >  60 min  → flat + ceil((minutes - 60) / interval_minutes) * amount_per_interval

compute_tariff() is pure; load_pricing_table() is the only part that reads the DB.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

from sqlalchemy.orm import Session

from parkgate.models.vehicle_pricing import VehiclePricing
from parkgate.services.errors import ValidationError

FIRST_HOUR_MINUTES = 60


@dataclass(frozen=True)
class PricingRule:
    first_hour_charge: float
    interval_minutes: int
    amount_per_interval: float


@dataclass(frozen=True)
class TariffBreakdown:
    vehicle_type: str
    duration_seconds: int
    duration_minutes: int
    additional_minutes: int
    additional_intervals: int
    total_amount: float
    amount_payable: float


class NoPricingConfigError(ValidationError):
    default_title = "Pricing Not Configured"


def parking_duration_seconds(entry_time: datetime, exit_time: datetime) -> int:
    """Whole seconds parked (floored). A clock skew making exit < entry counts as zero."""
    return max(0, math.floor((exit_time - entry_time).total_seconds()))


def compute_tariff(entry_time: datetime, exit_time: datetime, vehicle_type: str,
                   pricing_table: Mapping[str, PricingRule],
                   is_already_paid: bool = False) -> TariffBreakdown:
    rule = pricing_table.get(vehicle_type)
    if rule is None:
        raise NoPricingConfigError(
            f'No pricing configuration found for vehicle type "{vehicle_type}"')
    if rule.interval_minutes <= 0:
        raise NoPricingConfigError(
            f'Pricing for vehicle type "{vehicle_type}" has no valid charging interval')

    seconds = parking_duration_seconds(entry_time, exit_time)
    minutes = math.ceil(seconds / 60)

    additional_minutes = 0
    intervals = 0
    if minutes <= FIRST_HOUR_MINUTES:
        total = rule.first_hour_charge
    else:
        additional_minutes = minutes - FIRST_HOUR_MINUTES
        intervals = math.ceil(additional_minutes / rule.interval_minutes)
        total = rule.first_hour_charge + intervals * rule.amount_per_interval

    return TariffBreakdown(
        vehicle_type=vehicle_type,
        duration_seconds=seconds,
        duration_minutes=minutes,
        additional_minutes=additional_minutes,
        additional_intervals=intervals,
        total_amount=total,
        amount_payable=0 if is_already_paid else total,
    )


def resolve_vehicle_type(vehicle_type, pricing_table: Mapping[str, PricingRule], default: str) -> str:
    """Use the detected type when it is priced, otherwise fall back to the default (car)."""
    if vehicle_type is not None and str(vehicle_type) in pricing_table:
        return str(vehicle_type)
    return default


def load_pricing_table(db: Session, ledger_id: int) -> dict[str, PricingRule]:
    rows = db.query(VehiclePricing).filter(VehiclePricing.ledger_id == ledger_id).all()
    return {
        row.vehicle_type: PricingRule(
            first_hour_charge=row.first_hour_charge,
            interval_minutes=row.interval_minutes,
            amount_per_interval=row.amount_per_interval,
        )
        for row in rows
    }

# tests/test_tariff_engine.py
"""Unit tests for the tariff engine."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta
from parkgate.services.tariff_engine import (
    NoPricingConfigError, PricingRule, compute_tariff, load_pricing_table,
    parking_duration_seconds, resolve_vehicle_type,
)
from conftest import seed_facility

PRICING = {
    "2": PricingRule(first_hour_charge=20, interval_minutes=15, amount_per_interval=10),
    "4": PricingRule(first_hour_charge=40, interval_minutes=30, amount_per_interval=20),
}
ENTRY = datetime(2024, 5, 1, 9, 0, 0)


class TestComputeTariff:
    def test_seventy_five_minutes_car(self):
        tariff = compute_tariff(ENTRY, ENTRY + timedelta(minutes=75), "4", PRICING)
        assert tariff.duration_minutes == 75
        assert tariff.additional_minutes == 15
        assert tariff.additional_intervals == 1
        assert tariff.total_amount == 60
        assert tariff.amount_payable == 60

    def test_already_paid_nothing_payable(self):
        tariff = compute_tariff(ENTRY, ENTRY + timedelta(minutes=75), "4", PRICING, is_already_paid=True)
        assert tariff.total_amount == 60
        assert tariff.amount_payable == 0

    def test_exactly_one_hour_is_first_hour_only(self):
        tariff = compute_tariff(ENTRY, ENTRY + timedelta(minutes=60), "4", PRICING)
        assert tariff.total_amount == 40
        assert tariff.additional_intervals == 0

    def test_one_second_past_the_hour_starts_an_interval(self):
        tariff = compute_tariff(ENTRY, ENTRY + timedelta(minutes=60, seconds=1), "4", PRICING)
        assert tariff.duration_minutes == 61
        assert tariff.additional_intervals == 1
        assert tariff.total_amount == 60

    def test_zero_duration_charges_first_hour(self):
        tariff = compute_tariff(ENTRY, ENTRY, "2", PRICING)
        assert tariff.duration_seconds == 0
        assert tariff.total_amount == 20

    def test_multiple_intervals_two_wheeler(self):
        # 100 min → 40 extra → ceil(40/15) = 3 intervals
        tariff = compute_tariff(ENTRY, ENTRY + timedelta(minutes=100), "2", PRICING)
        assert tariff.additional_intervals == 3
        assert tariff.total_amount == 20 + 3 * 10

    def test_exit_before_entry_counts_as_zero(self):
        assert parking_duration_seconds(ENTRY, ENTRY - timedelta(minutes=5)) == 0

    def test_fractional_seconds_are_floored(self):
        assert parking_duration_seconds(ENTRY, ENTRY + timedelta(seconds=59, milliseconds=900)) == 59

    def test_unknown_vehicle_type_raises(self):
        with pytest.raises(NoPricingConfigError):
            compute_tariff(ENTRY, ENTRY + timedelta(minutes=10), "6", PRICING)

    def test_zero_interval_is_rejected(self):
        broken = {"4": PricingRule(first_hour_charge=40, interval_minutes=0, amount_per_interval=20)}
        with pytest.raises(NoPricingConfigError):
            compute_tariff(ENTRY, ENTRY + timedelta(minutes=90), "4", broken)


class TestResolveVehicleType:
    def test_priced_type_kept(self):
        assert resolve_vehicle_type("2", PRICING, "4") == "2"

    def test_numeric_type_is_matched_as_text(self):
        assert resolve_vehicle_type(2, PRICING, "4") == "2"

    def test_unpriced_type_falls_back_to_default(self):
        assert resolve_vehicle_type("6", PRICING, "4") == "4"
        assert resolve_vehicle_type(None, PRICING, "4") == "4"


def test_load_pricing_table(db):
    ledger = seed_facility(db)
    table = load_pricing_table(db, ledger.id)
    assert set(table) == {"2", "3", "4"}
    assert table["4"] == PricingRule(first_hour_charge=40, interval_minutes=30, amount_per_interval=20)

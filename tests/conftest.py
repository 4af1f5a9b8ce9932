# tests/conftest.py
"""
Shared fixtures: an in-memory SQLite database seeded with one ledger,
pricing for vehicle types 2/3/4, an entry and an exit booth with devices.
"""

import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before anything imports parkgate.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_CONNECTION_SWEEPER"] = "false"
os.environ["API_KEY"] = ""
os.environ["BARRIER_PULSE_DELAY_SECONDS"] = "0"

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from parkgate.config import settings
from parkgate.database import create_tables
from parkgate.models.booth import Booth, BoothDevice
from parkgate.models.enums import ClassStatus
from parkgate.models.global_ledger import GlobalLedger
from parkgate.models.parking_class import ParkingClass
from parkgate.models.vehicle import Vehicle
from parkgate.models.vehicle_pricing import VehiclePricing
from parkgate.services import vehicle_store
from parkgate.utils.time_utils import utcnow

PRICING = {
    "2": (20, 15, 10),
    "3": (30, 20, 15),
    "4": (40, 30, 20),
}


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway():
    """Stands in for the device gateway; controllers only call dispatch_outcome()."""
    return MagicMock()


def seed_facility(db, total=2300, public_total=300, public_occupied=0, classes=()):
    """
    classes: iterable of (code, slots_reserved, slots_used, status).
    occupied_slots is derived so the ledger starts consistent.
    """
    now = utcnow()
    occupied = public_occupied + sum(c[2] for c in classes)
    ledger = GlobalLedger(
        code=settings.LEDGER_CODE,
        name="Main Parking Space",
        total_parking_slots=total,
        occupied_slots=occupied,
        available_slots=total - occupied,
        public_total=public_total,
        public_occupied=public_occupied,
        public_available=public_total - public_occupied,
        total_registered_users=0,
        created_at=now,
        updated_at=now,
    )
    db.add(ledger)
    db.flush()

    for vehicle_type, (first_hour, interval, per_interval) in PRICING.items():
        db.add(VehiclePricing(ledger_id=ledger.id, vehicle_type=vehicle_type, first_hour_charge=first_hour,
                              interval_minutes=interval, amount_per_interval=per_interval))

    for code, reserved, used, status in classes:
        db.add(ParkingClass(
            ledger_id=ledger.id, code=code, name=code.upper(), slots_reserved=reserved, slots_used=used,
            status=status, renewal_type="monthly", renewal_charge=500,
            starting_date=now, ending_date=now + timedelta(days=30),
        ))

    entry = Booth(booth_code="ENTRY-1", booth_type="entry", status="active", location="Gate A", created_at=now)
    exit_ = Booth(booth_code="EXIT-1", booth_type="exit", status="active", location="Gate A", created_at=now)
    closed = Booth(booth_code="ENTRY-2", booth_type="entry", status="inactive", location="Gate B", created_at=now)
    db.add_all([entry, exit_, closed])
    db.flush()
    db.add_all([
        BoothDevice(booth_id=entry.id, device_id="DISP-IN-1", role="display"),
        BoothDevice(booth_id=entry.id, device_id="BAR-IN-1", role="barrier", ip_address="10.0.0.11"),
        BoothDevice(booth_id=exit_.id, device_id="DISP-OUT-1", role="display"),
        BoothDevice(booth_id=exit_.id, device_id="CAM-OUT-1", role="camera", ip_address="10.0.0.21"),
    ])
    db.commit()
    return ledger


def add_vehicle(db, plate, class_code="public", status="pending", vehicle_type="4",
                entry_time=None, is_blacklisted=False):
    now = utcnow()
    vehicle = Vehicle(
        plate_number=plate, vehicle_type=vehicle_type, class_code=class_code, status=status,
        entry_time=entry_time, is_blacklisted=is_blacklisted, created_at=now, updated_at=now,
        owner_first_name="Asha", owner_last_name="Rao",
    )
    db.add(vehicle)
    db.commit()
    return vehicle


@pytest.fixture
def facility(db):
    return seed_facility(db, classes=[
        ("google-llc-21", 100, 50, ClassStatus.ACTIVE.value),
        ("acme-night", 10, 0, ClassStatus.INACTIVE.value),
    ])


def interleaved_lookup(session_factory, rival):
    """
    Replacement for vehicle_store.find_by_plate that interleaves two sessions.

    The first lookup reads the row, then lets `rival` run and commit on a second
    session, and only then hands back the row as it was first read. Later
    lookups go straight to the database.
    """
    real_lookup = vehicle_store.find_by_plate
    state = {"raced": False}

    def lookup(db, plate_number):
        snapshot = real_lookup(db, plate_number)
        if not state["raced"]:
            state["raced"] = True
            other = session_factory()
            try:
                rival(other)
            finally:
                other.close()
        return snapshot

    return lookup

# scripts/setup/init_db.py
"""
Initialize database: creates all tables and seeds the facility ledger.
Run once before first launch, or after adding new models.
Seeding is skipped when the ledger row already exists.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from parkgate.database import SessionLocal, create_tables, engine
from parkgate.config import settings
from parkgate.models.global_ledger import GlobalLedger
from parkgate.models.vehicle_pricing import VehiclePricing
from parkgate.utils.time_utils import utcnow
from sqlalchemy import inspect, text

TOTAL_PARKING_SLOTS = 2300
PUBLIC_SLOTS = 300

# vehicle_type → (first hour charge, interval minutes, amount per interval)
DEFAULT_PRICING = {
    "2": (20, 15, 10),
    "3": (30, 20, 15),
    "4": (40, 30, 20),
}


def seed_ledger(db) -> bool:
    if db.query(GlobalLedger).filter(GlobalLedger.code == settings.LEDGER_CODE).first():
        return False

    now = utcnow()
    ledger = GlobalLedger(
        code=settings.LEDGER_CODE,
        name="Main Parking Space",
        total_parking_slots=TOTAL_PARKING_SLOTS,
        occupied_slots=0,
        available_slots=TOTAL_PARKING_SLOTS,
        public_total=PUBLIC_SLOTS,
        public_occupied=0,
        public_available=PUBLIC_SLOTS,
        total_registered_users=0,
        last_maintenance_date=now,
        created_at=now,
        updated_at=now,
    )
    db.add(ledger)
    db.flush()
    for vehicle_type, (first_hour, interval, per_interval) in DEFAULT_PRICING.items():
        db.add(VehiclePricing(
            ledger_id=ledger.id,
            vehicle_type=vehicle_type,
            first_hour_charge=first_hour,
            interval_minutes=interval,
            amount_per_interval=per_interval,
        ))
    db.commit()
    return True


def main():
    print("🗄️  ParkGate DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  sudo systemctl start postgresql")
        sys.exit(1)

    # Create all tables
    print("\n📋 Creating tables...")
    create_tables()
    tables = sorted(inspect(engine).get_table_names())
    print(f"✅ Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    db = SessionLocal()
    try:
        if seed_ledger(db):
            print(f"\n🅿️  Seeded ledger {settings.LEDGER_CODE}: "
                  f"{TOTAL_PARKING_SLOTS} slots, {PUBLIC_SLOTS} public, pricing for types {list(DEFAULT_PRICING)}")
        else:
            print(f"\n🅿️  Ledger {settings.LEDGER_CODE} already present, seeding skipped")
    finally:
        db.close()

    print("\n🎉 Database ready! You can now start the backend:")
    print("   uvicorn parkgate.main:app --host 0.0.0.0 --port 8080 --reload")


if __name__ == "__main__":
    main()

# tests/test_class_admin.py
"""Adding, editing and removing subscription classes on the ledger."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import timedelta
from parkgate.models.global_ledger import GlobalLedger
from parkgate.models.parking_class import ParkingClass
from parkgate.services import capacity_ledger
from parkgate.services.class_admin import add_class, delete_class, update_class
from parkgate.services.class_ref import NamedClass
from parkgate.services.errors import CapacityError, ConflictError, NotFoundError, StateError, ValidationError
from conftest import seed_facility


def _new_class(**overrides):
    payload = {
        "code": "acme-day",
        "name": "Acme Day Staff",
        "slots_reserved": 20,
        "renewal_type": "monthly",
        "renewal_charge": 750,
    }
    payload.update(overrides)
    return payload


def _ledger(db):
    return db.query(GlobalLedger).one()


class TestAddClass:
    def test_created_empty_and_active(self, db, facility):
        parking_class = add_class(db, _new_class())

        assert parking_class.code == "acme-day"
        assert parking_class.slots_used == 0
        assert parking_class.status == "active"
        assert parking_class.ending_date > parking_class.starting_date
        assert capacity_ledger.is_consistent(db, _ledger(db))

    def test_yearly_window(self, db, facility):
        parking_class = add_class(db, _new_class(renewal_type="yearly"))
        assert parking_class.ending_date - parking_class.starting_date >= timedelta(days=365)

    def test_duplicate_code_any_case(self, db, facility):
        with pytest.raises(ConflictError) as exc:
            add_class(db, _new_class(code="Google-LLC-21"))
        assert exc.value.status_code == 409
        assert exc.value.screen_title == "Duplicate Class"

    def test_public_is_reserved(self, db, facility):
        with pytest.raises(ValidationError):
            add_class(db, _new_class(code="PUBLIC"))

    @pytest.mark.parametrize("overrides", [
        {"slots_reserved": -1},
        {"renewal_type": None},
        {"renewal_charge": None},
        {"renewal_type": "fortnightly"},
        {"status": "paused"},
        {"name": " "},
    ])
    def test_invalid_data(self, db, facility, overrides):
        with pytest.raises(ValidationError) as exc:
            add_class(db, _new_class(**overrides))
        assert exc.value.screen_title == "Invalid Class Data"
        assert db.query(ParkingClass).count() == 2

    def test_must_fit_facility(self, db, facility):
        # 2300 total, 300 public, 110 already reserved
        with pytest.raises(CapacityError) as exc:
            add_class(db, _new_class(slots_reserved=1891))
        assert exc.value.screen_title == "Capacity Exceeded"
        assert capacity_ledger.find_class(db, "acme-day") is None

        assert add_class(db, _new_class(slots_reserved=1890)).slots_reserved == 1890


class TestUpdateClass:
    def test_rename_and_reprice(self, db, facility):
        parking_class = update_class(db, "GOOGLE-LLC-21", {"name": "Google", "renewal_charge": 900})
        assert parking_class.code == "google-llc-21"
        assert parking_class.name == "Google"
        assert parking_class.renewal_charge == 900
        assert parking_class.slots_used == 50

    def test_shrink_to_slots_in_use(self, db, facility):
        assert update_class(db, "google-llc-21", {"slots_reserved": 50}).slots_reserved == 50

    def test_cannot_shrink_below_slots_in_use(self, db, facility):
        with pytest.raises(CapacityError) as exc:
            update_class(db, "google-llc-21", {"slots_reserved": 49})
        assert exc.value.screen_title == "Slots In Use"
        parking_class = capacity_ledger.find_class(db, "google-llc-21")
        assert parking_class.slots_reserved == 100
        assert parking_class.slots_used <= parking_class.slots_reserved

    def test_cannot_grow_past_facility(self, db, facility):
        with pytest.raises(CapacityError) as exc:
            update_class(db, "google-llc-21", {"slots_reserved": 2000})
        assert exc.value.screen_title == "Capacity Exceeded"
        assert capacity_ledger.find_class(db, "google-llc-21").slots_reserved == 100

    def test_renewal_change_moves_ending_date(self, db, facility):
        parking_class = update_class(db, "google-llc-21", {"renewal_type": "weekly"})
        assert parking_class.ending_date - parking_class.starting_date == timedelta(days=7)

    def test_deactivated_class_stops_admitting(self, db, facility):
        update_class(db, "google-llc-21", {"status": "inactive"})
        with pytest.raises(StateError):
            capacity_ledger.reserve(db, NamedClass("google-llc-21"))

    def test_nothing_to_update(self, db, facility):
        with pytest.raises(ValidationError) as exc:
            update_class(db, "google-llc-21", {"name": None})
        assert exc.value.screen_title == "Nothing To Update"

    def test_unknown_class(self, db, facility):
        with pytest.raises(NotFoundError):
            update_class(db, "nope", {"name": "Nope"})


class TestDeleteClass:
    def test_empty_class_is_removed(self, db, facility):
        assert delete_class(db, "Acme-Night") == "acme-night"
        assert capacity_ledger.find_class(db, "acme-night") is None

    def test_class_in_use_is_kept(self, db, facility):
        with pytest.raises(ConflictError) as exc:
            delete_class(db, "google-llc-21")
        assert exc.value.screen_title == "Class In Use"
        assert capacity_ledger.find_class(db, "google-llc-21").slots_used == 50
        assert capacity_ledger.is_consistent(db, _ledger(db))

    def test_unknown_class(self, db, facility):
        with pytest.raises(NotFoundError):
            delete_class(db, "nope")


def test_slots_used_is_not_writable(db):
    seed_facility(db, classes=[("gold", 5, 3, "active")])
    parking_class = update_class(db, "gold", {"slots_used": 0, "name": "Gold"})
    assert parking_class.slots_used == 3

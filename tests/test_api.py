# tests/test_api.py
"""HTTP and WebSocket surface through FastAPI's TestClient."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import timedelta
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient
from parkgate.database import get_db
from parkgate.main import app
from parkgate.models.booth import BoothDevice
from parkgate.services.connection_registry import registry
from parkgate.services.notification_gateway import get_gateway
from parkgate.utils.time_utils import utcnow
from conftest import add_vehicle, seed_facility


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: MagicMock()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db):
    return seed_facility(db, classes=[("google-llc-21", 100, 50, "active")])


class TestEntryEndpoint:
    def test_public_entry(self, client, seeded):
        resp = client.post("/api/v1/parking/in/validate",
                           json={"vehicle_no": "PUBLIC1", "booth_code": "ENTRY-1", "vehicle_type": 4})
        assert resp.status_code == 200
        body = resp.json()
        assert body["screen_message_type"] == "success"
        assert body["barrier_status"] == "open"
        assert body["class_code"] == "public"
        assert body["max_waiting_duration"] == 30

    def test_rejection_body(self, client, seeded):
        resp = client.post("/api/v1/parking/in/validate", json={"vehicle_no": "PUBLIC1"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["screen_message_type"] == "error"
        assert body["barrier_status"] == "closed"
        assert body["screen_title"] == "Invalid Booth"

    def test_duplicate_entry_is_409(self, client, seeded):
        payload = {"vehicle_no": "PUBLIC1", "booth_code": "ENTRY-1"}
        client.post("/api/v1/parking/in/validate", json=payload)
        resp = client.post("/api/v1/parking/in/validate", json=payload)
        assert resp.status_code == 409
        assert resp.json()["screen_title"] == "Duplicate Entry"

    def test_unknown_booth_before_setup(self, client):
        resp = client.post("/api/v1/parking/in/validate",
                           json={"vehicle_no": "PUBLIC1", "booth_code": "ENTRY-1"})
        assert resp.status_code == 404


class TestExitEndpoint:
    def test_payment_required_then_paid(self, client, db):
        seed_facility(db, public_occupied=1)
        add_vehicle(db, "PUBLIC1", status="parked", entry_time=utcnow() - timedelta(minutes=75, seconds=5))

        resp = client.post("/api/v1/parking/out/validate", json={"vehicle_no": "PUBLIC1", "booth_code": "EXIT-1"})
        assert resp.status_code == 403
        assert resp.json()["tariff"] == {"total_amount": 60, "amount_payable": 60}

        resp = client.post("/api/v1/parking/out/validate",
                           json={"vehicle_no": "PUBLIC1", "booth_code": "EXIT-1", "is_paid": True})
        assert resp.status_code == 200
        body = resp.json()
        assert body["screen_title"] == "Thank You!"
        assert body["tariff"]["amount_payable"] == 0
        assert body["total_parking_duration"] >= 75 * 60

        history = client.get("/api/v1/parking/history", params={"plate": "public1"}).json()
        assert len(history) == 1
        assert history[0]["total_amount"] == 60


class TestRegistrationEndpoint:
    def test_created_then_idempotent(self, client, seeded):
        payload = {"vehicle_no": "KA01AB1234", "vehicle_type": "4", "owner_first_name": "Asha",
                   "owner_last_name": "Rao", "class_code": "google-llc-21"}
        resp = client.post("/api/v1/parking/register", json=payload)
        assert resp.status_code == 201
        assert resp.json()["class_code"] == "google-llc-21"

        resp = client.post("/api/v1/parking/register", json=payload)
        assert resp.status_code == 200

    def test_missing_fields(self, client, seeded):
        resp = client.post("/api/v1/parking/register", json={"vehicle_no": "KA01AB1234"})
        assert resp.status_code == 400
        assert resp.json()["screen_title"] == "Missing Fields"


class TestVehicleEndpoints:
    def test_lookup_and_blacklist(self, client, db, seeded):
        add_vehicle(db, "KA01AB1234")
        assert client.get("/api/v1/parking/vehicles/ka01ab1234").json()["is_blacklisted"] is False

        resp = client.put("/api/v1/parking/vehicles/KA01AB1234/blacklist", json={"is_blacklisted": True})
        assert resp.status_code == 200
        assert resp.json()["is_blacklisted"] is True

        resp = client.post("/api/v1/parking/in/validate",
                           json={"vehicle_no": "KA01AB1234", "booth_code": "ENTRY-1"})
        assert resp.status_code == 403

    def test_unknown_vehicle(self, client, seeded):
        assert client.get("/api/v1/parking/vehicles/NOBODY").status_code == 404
        assert client.put("/api/v1/parking/vehicles/NOBODY/blacklist",
                          json={"is_blacklisted": True}).status_code == 404

    def test_registered_list_and_edit(self, client, db, seeded):
        add_vehicle(db, "KA01AB1234", class_code="google-llc-21", status="parked")
        add_vehicle(db, "KA02CD5678", class_code="google-llc-21")
        add_vehicle(db, "PUBLIC1")

        plates = [v["plate_number"] for v in client.get("/api/v1/parking/vehicles").json()]
        assert plates == ["KA01AB1234", "KA02CD5678"]
        assert len(client.get("/api/v1/parking/vehicles", params={"search": "cd56"}).json()) == 1

        resp = client.put("/api/v1/parking/vehicles/ka01ab1234", json={"class_code": "public"})
        assert resp.status_code == 200
        assert resp.json()["class_code"] == "public"
        ledger = client.get("/api/v1/ledger").json()
        assert ledger["public_slots"]["occupied"] == 1
        assert ledger["supported_classes"][0]["slots_used"] == 49
        assert ledger["is_consistent"] is True

        assert client.put("/api/v1/parking/vehicles/NOBODY", json={"owner_first_name": "X"}).status_code == 404
        assert client.put("/api/v1/parking/vehicles/PUBLIC1", json={}).status_code == 400


class TestClassEndpoints:
    def test_add_edit_delete(self, client, seeded):
        resp = client.post("/api/v1/ledger/classes", json={
            "code": "acme-day", "name": "Acme", "slots_reserved": 10,
            "renewal_type": "monthly", "renewal_charge": 500,
        })
        assert resp.status_code == 201
        assert resp.json()["slots_used"] == 0

        resp = client.put("/api/v1/ledger/classes/acme-day", json={"slots_reserved": 4})
        assert resp.status_code == 200
        assert resp.json()["slots_reserved"] == 4

        resp = client.delete("/api/v1/ledger/classes/acme-day")
        assert resp.json() == {"status": "deleted", "code": "acme-day"}
        assert [c["code"] for c in client.get("/api/v1/ledger").json()["supported_classes"]] == ["google-llc-21"]

    def test_guards(self, client, seeded):
        resp = client.put("/api/v1/ledger/classes/google-llc-21", json={"slots_reserved": 10})
        assert resp.status_code == 400
        assert resp.json()["screen_title"] == "Slots In Use"

        resp = client.delete("/api/v1/ledger/classes/google-llc-21")
        assert resp.status_code == 409
        assert resp.json()["screen_title"] == "Class In Use"

        resp = client.post("/api/v1/ledger/classes", json={
            "code": "GOOGLE-LLC-21", "name": "Dup", "slots_reserved": 1,
            "renewal_type": "monthly", "renewal_charge": 1,
        })
        assert resp.status_code == 409
        assert client.get("/api/v1/ledger").json()["is_consistent"] is True


def test_ledger_snapshot(client, seeded):
    body = client.get("/api/v1/ledger").json()
    assert body["total_parking_slots"] == 2300
    assert body["occupied_slots"] == 50
    assert body["public_slots"] == {"total": 300, "occupied": 0, "available": 300}
    assert [c["code"] for c in body["supported_classes"]] == ["google-llc-21"]
    assert {p["vehicle_type"] for p in body["pricing"]} == {"2", "3", "4"}
    assert body["is_consistent"] is True


def test_health(client, seeded):
    with patch("parkgate.routers.health.requests.get") as mock_get:
        mock_get.return_value = MagicMock(status_code=200)
        body = client.get("/api/v1/health").json()

    assert body["database"] == "ok"
    assert body["ledger"] == "ok"
    assert body["barriers"] == {"BAR-IN-1": "ok"}
    assert mock_get.call_args[0][0].startswith("http://10.0.0.11/")


class TestDeviceSocket:
    def test_known_device_registers_and_keeps_alive(self, client, db, seeded):
        with client.websocket_connect("/api/v1/ws/devices/DISP-IN-1") as ws:
            hello = ws.receive_json()
            assert hello["event"] == "registration_success"
            assert hello["payload"]["booth_code"] == "ENTRY-1"
            assert hello["payload"]["booth_type"] == "entry"
            assert registry.get("DISP-IN-1") is not None

            ws.send_json({"event": "keep-alive"})
            assert ws.receive_json()["event"] == "keep-alive-response"

            db.expire_all()
            stored = db.query(BoothDevice).filter(BoothDevice.device_id == "DISP-IN-1").one()
            assert stored.connection_id == hello["payload"]["connection_id"]

    def test_unknown_device_is_refused(self, client, seeded):
        with client.websocket_connect("/api/v1/ws/devices/NOT-A-DEVICE") as ws:
            assert ws.receive_json()["event"] == "unauthorized"
        assert registry.get("NOT-A-DEVICE") is None

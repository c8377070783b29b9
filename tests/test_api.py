import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from barbershop.db import get_session
from barbershop.deps import get_notifier
from barbershop.errors import StorageError
from barbershop.main import app
from barbershop.services.reminders import ScanGuard

from conftest import BARBER, CUSTOMER, SERVICE, RecordingNotifier


@pytest.fixture
def client(engine):
    notifier = RecordingNotifier()

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


def _set_monday(client):
    resp = client.put(f"/barbers/{BARBER}/schedule/monday", json={"time_slots": ["9", "10:00", "11:00"]})
    assert resp.status_code == 200
    return resp


def _book(client, slot="10:00", customer=CUSTOMER, day="2030-01-07"):
    return client.post(
        "/appointments",
        json={
            "barber_id": BARBER,
            "customer_id": customer,
            "service_id": SERVICE,
            "date": day,
            "time_slot": slot,
        },
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_schedule_roundtrip(client):
    body = _set_monday(client).json()
    assert body["time_slots"] == ["09:00", "10:00", "11:00"]

    listed = client.get(f"/barbers/{BARBER}/schedule").json()
    assert [s["day_of_week"] for s in listed] == ["monday"]

    assert client.get("/barbers/nobody/schedule").status_code == 404
    assert client.put(f"/barbers/{BARBER}/schedule/funday", json={"time_slots": ["09:00"]}).status_code == 422


def test_booking_flow_and_error_mapping(client):
    _set_monday(client)

    created = _book(client)
    assert created.status_code == 201
    assert created.json()["status"] == "pending"

    availability = client.get(f"/barbers/{BARBER}/availability", params={"date": "2030-01-07"}).json()
    assert availability["available_slots"] == ["09:00", "11:00"]
    assert availability["booked_slots"] == ["10:00"]

    taken = _book(client, customer="customer-2")
    assert taken.status_code == 409
    assert taken.json()["detail"]["error"] == "slot_taken"
    assert taken.json()["detail"]["message"] == "slot no longer available"

    assert _book(client, slot="14:00").status_code == 422
    assert client.get(f"/barbers/{BARBER}/availability", params={"date": "2030-01-09"}).status_code == 404


def test_reschedule_and_transitions(client):
    _set_monday(client)
    first = _book(client, slot="09:00").json()
    second = _book(client, slot="10:00").json()

    refused = client.patch(f"/appointments/{second['id']}/reschedule", json={"date": "2030-01-07", "time_slot": "11:00"})
    assert refused.status_code == 409
    assert refused.json()["detail"]["reason"] == "not_next_appointment"

    moved = client.patch(f"/appointments/{first['id']}/reschedule", json={"date": "07/01/2030", "time_slot": "11:00"})
    assert moved.status_code == 200
    assert moved.json()["reschedule_count"] == 1

    assert client.patch(f"/appointments/{second['id']}/confirm").json()["status"] == "confirmed"
    assert client.patch(f"/appointments/{second['id']}/cancel").json()["status"] == "cancelled"
    assert client.patch(f"/appointments/{second['id']}/complete").status_code == 409
    assert client.patch("/appointments/12345/cancel").status_code == 404

    mine = client.get(f"/customers/{CUSTOMER}/appointments", params={"status": "pending"}).json()
    assert [a["time_slot"] for a in mine] == ["11:00"]


def test_manual_trigger_and_status(client):
    report = client.post("/reminders/trigger")
    assert report.status_code == 200
    assert report.json() == {"reminders_sent": 0, "errors": [], "skipped": False}

    status = client.get("/reminders/status").json()
    assert status["is_running"] is False
    assert status["last_result"]["reminders_sent"] == 0


def test_trigger_storage_failure_is_retryable(client, monkeypatch):
    def unavailable(self):
        raise StorageError("storage unavailable while acquiring scanner lock, please retry")

    monkeypatch.setattr(ScanGuard, "acquire", unavailable)

    resp = client.post("/reminders/trigger")
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "1"
    assert resp.json()["detail"]["error"] == "storage_error"

"""HTTP surface."""
from conftest import DAY, at
from salon.models import SalonSettings
from salon.services.capacity import AppointmentStatus


def _booking(start: str, end: str | None = None, **extra) -> dict:
    body = {"start_time": at(start).isoformat(), **extra}
    if end is not None:
        body["end_time"] = at(end).isoformat()
    return body


def test_book_appointment(client):
    response = client.post("/appointments/", json=_booking("10:00", "11:00", client_id=7, notes="cut"))

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "Pending"
    assert data["start_time"] == "2030-06-03T10:00:00"
    assert data["end_time"] == "2030-06-03T11:00:00"
    assert data["client_id"] == 7
    assert data["capacity_warning"] is None


def test_book_with_duration(client):
    response = client.post("/appointments/", json=_booking("10:00", duration_minutes=45))

    assert response.status_code == 201
    assert response.json()["end_time"] == "2030-06-03T10:45:00"


def test_book_requires_end_or_duration(client):
    response = client.post("/appointments/", json=_booking("10:00"))

    assert response.status_code == 422


def test_book_near_capacity_carries_warning(client, add_appointment):
    for _ in range(3):
        add_appointment("10:00", "11:00")

    response = client.post("/appointments/", json=_booking("10:00", "11:00"))

    assert response.status_code == 201
    warning = response.json()["capacity_warning"]
    assert warning["capacity_percentage"] == 80.0
    assert warning["available_stations"] == 1


def test_book_full_slot_is_conflict(client, add_appointment):
    for _ in range(5):
        add_appointment("10:00", "11:00")

    response = client.post("/appointments/", json=_booking("10:00", "11:00"))

    assert response.status_code == 409
    data = response.json()
    assert data["error_kind"] == "capacity_exceeded"
    assert data["retryable"] is False
    assert data["current_concurrent"] == 5
    assert data["max_capacity"] == 5
    assert data["next_available_slot"] == "2030-06-03T09:00:00"


def test_book_outside_working_hours(client):
    response = client.post("/appointments/", json=_booking("17:30", "18:30"))

    assert response.status_code == 422
    data = response.json()
    assert data["error_kind"] == "invalid_time_range"
    assert data["working_hours"] == {"start": "09:00", "end": "18:00"}


def test_book_inverted_range(client):
    response = client.post("/appointments/", json=_booking("11:00", "10:00"))

    assert response.status_code == 422
    assert response.json()["error_kind"] == "invalid_time_range"


def test_book_over_daily_limit(client, settings_store, add_appointment):
    settings_store.set("max_daily_appointments", 2, "integer")
    add_appointment("09:00", "09:30")
    add_appointment("15:00", "15:30")

    response = client.post("/appointments/", json=_booking("12:00", "12:30"))

    assert response.status_code == 409
    data = response.json()
    assert data["error_kind"] == "daily_limit_exceeded"
    assert data["max_allowed"] == 2


def test_book_without_configuration(client, settings_store, session_factory):
    with session_factory() as db:
        db.query(SalonSettings).filter(SalonSettings.key == "max_concurrent_appointments").delete()
        db.commit()
    settings_store.clear_cache()

    response = client.post("/appointments/", json=_booking("10:00", "11:00"))

    assert response.status_code == 503
    data = response.json()
    assert data["error_kind"] == "configuration_missing"
    assert data["key"] == "max_concurrent_appointments"
    assert "Retry-After" not in response.headers


def test_get_and_list_appointments(client, add_appointment):
    first = add_appointment("09:00", "10:00")
    add_appointment("11:00", "12:00", AppointmentStatus.CANCELLED)
    add_appointment("11:00", "12:00", day=DAY.replace(day=4))

    response = client.get(f"/appointments/{first}")
    assert response.status_code == 200
    assert response.json()["status"] == "Confirmed"

    response = client.get("/appointments/", params={"date": DAY.isoformat()})
    assert response.status_code == 200
    assert [a["status"] for a in response.json()] == ["Confirmed", "Cancelled"]

    assert client.get("/appointments/9999").status_code == 404


def test_status_transitions(client, add_appointment):
    appointment_id = add_appointment("10:00", "11:00", AppointmentStatus.PENDING)

    response = client.patch(f"/appointments/{appointment_id}/status", json={"status": "confirmed"})
    assert response.status_code == 200
    assert response.json()["status"] == "Confirmed"

    response = client.patch(f"/appointments/{appointment_id}/status", json={"status": "Cancelled"})
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"

    response = client.patch(f"/appointments/{appointment_id}/status", json={"status": "Confirmed"})
    assert response.status_code == 409


def test_status_update_rejects_unknown_status(client, add_appointment):
    appointment_id = add_appointment("10:00", "11:00")

    response = client.patch(f"/appointments/{appointment_id}/status", json={"status": "Archived"})

    assert response.status_code == 422


def test_status_update_missing_appointment(client):
    response = client.patch("/appointments/9999/status", json={"status": "Cancelled"})

    assert response.status_code == 404


def test_delete_is_not_allowed(client, add_appointment):
    appointment_id = add_appointment("10:00", "11:00")

    assert client.delete(f"/appointments/{appointment_id}").status_code == 405


def test_capacity_check(client, add_appointment):
    for _ in range(2):
        add_appointment("10:00", "11:00")

    response = client.post("/capacity/check", json={
        "start_time": at("10:30").isoformat(),
        "end_time": at("11:30").isoformat(),
    })

    assert response.status_code == 200
    data = response.json()
    assert data["admissible"] is True
    assert data["reason"] is None
    assert data["capacity_info"]["concurrent"] == {"current": 2, "max": 5, "available": 3, "percentage": 40.0}
    assert data["capacity_info"]["daily"]["current"] == 2


def test_capacity_check_reports_rejection(client, add_appointment):
    for _ in range(5):
        add_appointment("10:00", "11:00")

    response = client.post("/capacity/check", json={
        "start_time": at("10:00").isoformat(),
        "end_time": at("11:00").isoformat(),
    })

    data = response.json()
    assert data["admissible"] is False
    assert data["reason"] == "capacity_exceeded"


def test_available_slots(client, add_appointment):
    for _ in range(5):
        add_appointment("09:00", "09:30")

    response = client.get("/capacity/slots", params={"date": DAY.isoformat(), "duration": 30})

    assert response.status_code == 200
    data = response.json()
    assert data["max_stations"] == 5
    assert data["total_available_slots"] == 17
    assert data["available_slots"][0]["time"] == "09:30"
    assert data["available_slots"][0]["status"] == "available"


def test_available_slots_rejects_bad_duration(client):
    response = client.get("/capacity/slots", params={"date": DAY.isoformat(), "duration": 0})

    assert response.status_code == 422


def test_dashboard(client, add_appointment):
    add_appointment("09:00", "10:00")

    response = client.get("/capacity/dashboard", params={"date": DAY.isoformat()})

    assert response.status_code == 200
    data = response.json()
    assert data["capacity_settings"]["max_concurrent_appointments"] == 5
    assert data["capacity_settings"]["working_hours"] == {"start": "09:00", "end": "18:00"}
    assert data["current_status"]["total_appointments_today"] == 1
    assert data["current_status"]["status"] == "low"
    assert len(data["per_slot_occupancy"]) == 18
    assert data["per_slot_occupancy"][0]["occupied"] == 1
    assert data["peak_hours"] == [{"hour": "09:00", "appointments": 1}]


def test_settings_read_and_update(client):
    response = client.get("/settings/")
    assert response.status_code == 200
    assert response.json()["current_values"]["max_concurrent_appointments"] == 5

    response = client.put("/settings/", json={
        "settings": [{"key": "max_concurrent_appointments", "value": 3}],
    })
    assert response.status_code == 200
    assert response.json()["settings"]["max_concurrent_appointments"] == 3

    response = client.get("/capacity/slots", params={"date": DAY.isoformat(), "duration": 30})
    assert response.json()["max_stations"] == 3


def test_settings_update_rejects_unknown_key(client):
    response = client.put("/settings/", json={
        "settings": [{"key": "enable_coupons", "value": True}],
    })

    assert response.status_code == 422


def test_settings_update_rejects_bad_value(client):
    response = client.put("/settings/", json={
        "settings": [{"key": "max_concurrent_appointments", "value": "many"}],
    })

    assert response.status_code == 422


def test_book_with_matching_end_and_duration(client):
    response = client.post("/appointments/", json=_booking("10:00", "10:45", duration_minutes=45))

    assert response.status_code == 201
    assert response.json()["end_time"] == "2030-06-03T10:45:00"


def test_book_rejects_conflicting_end_and_duration(client):
    response = client.post("/appointments/", json=_booking("10:00", "11:00", duration_minutes=45))

    assert response.status_code == 422
    assert client.get("/appointments/", params={"date": DAY.isoformat()}).json() == []


def test_settings_update_rejects_unusable_configuration(client):
    response = client.put("/settings/", json={
        "settings": [{"key": "working_hours_end", "value": "08:00"}],
    })

    assert response.status_code == 422
    assert client.get("/settings/").json()["current_values"]["working_hours_end"] == "18:00"

    response = client.put("/settings/", json={
        "settings": [{"key": "max_concurrent_appointments", "value": 0}],
    })

    assert response.status_code == 422
    assert client.post("/appointments/", json=_booking("10:00", "11:00")).status_code == 201

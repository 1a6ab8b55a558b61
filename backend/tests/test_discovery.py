"""Slot discovery and its agreement with admission."""
from datetime import timedelta

import pytest

from conftest import DAY, at
from salon.services.capacity import AppointmentStatus, ConfigurationMissing
from salon.services.capacity.errors import InvalidTimeRange


def _times(slots) -> list[str]:
    return [slot.start.strftime("%H:%M") for slot in slots]


def test_scenario_full_first_slot(discovery, add_appointment):
    for _ in range(5):
        add_appointment("09:00", "09:30")

    times = _times(discovery.available_slots(DAY, 30))

    assert "09:00" not in times
    assert times[0] == "09:30"
    assert times[-1] == "17:30"
    assert len(times) == 17


def test_empty_day_lists_every_grid_start(discovery):
    slots = list(discovery.available_slots(DAY, 60))

    assert _times(slots)[0] == "09:00"
    assert _times(slots)[-1] == "17:00"
    assert all(s.available_stations == 5 and s.max_stations == 5 for s in slots)
    assert all(s.end - s.start == timedelta(minutes=60) for s in slots)
    assert all(s.status == "available" for s in slots)


def test_available_stations_and_status(discovery, add_appointment):
    for _ in range(4):
        add_appointment("10:00", "10:30")
    add_appointment("11:00", "11:30", AppointmentStatus.PENDING)

    slots = {slot.start.strftime("%H:%M"): slot for slot in discovery.available_slots(DAY, 30)}

    assert slots["10:00"].available_stations == 1
    assert slots["10:00"].capacity_percentage == 80.0
    assert slots["10:00"].status == "limited"
    assert slots["11:00"].available_stations == 4
    assert slots["11:00"].status == "available"


def test_full_day_quota_returns_nothing(discovery, settings_store, add_appointment):
    settings_store.set("max_daily_appointments", 2, "integer")
    add_appointment("09:00", "09:30")
    add_appointment("17:00", "17:30", AppointmentStatus.PENDING)

    assert list(discovery.available_slots(DAY, 30)) == []


def test_inert_appointments_do_not_block(discovery, add_appointment):
    for _ in range(5):
        add_appointment("09:00", "09:30", AppointmentStatus.CANCELLED)
        add_appointment("09:00", "09:30", AppointmentStatus.COMPLETED)

    assert _times(discovery.available_slots(DAY, 30))[0] == "09:00"


def test_granularity_comes_from_settings(discovery, settings_store):
    settings_store.set("slot_granularity_minutes", 60, "integer")
    settings_store.set("working_hours_end", "12:00")

    assert _times(discovery.available_slots(DAY, 30)) == ["09:00", "10:00", "11:00"]


def test_listing_is_recomputed_on_every_iteration(discovery, add_appointment):
    listing = discovery.available_slots(DAY, 30)
    assert "09:00" in _times(listing)

    for _ in range(5):
        add_appointment("09:00", "09:30")

    assert "09:00" not in _times(listing)


def test_non_positive_duration_is_rejected_eagerly(discovery):
    with pytest.raises(InvalidTimeRange):
        discovery.available_slots(DAY, 0)


def test_missing_configuration_surfaces(discovery, session_factory, settings_store):
    from salon.models import SalonSettings

    with session_factory() as db:
        db.query(SalonSettings).filter(SalonSettings.key == "max_concurrent_appointments").delete()
        db.commit()
    settings_store.clear_cache()

    with pytest.raises(ConfigurationMissing):
        list(discovery.available_slots(DAY, 30))


def test_listed_slots_are_admitted_and_excluded_slots_are_not(
    discovery, controller, settings_store, add_appointment
):
    settings_store.set("max_concurrent_appointments", 2, "integer")
    add_appointment("10:00", "11:00")
    add_appointment("10:00", "11:00", AppointmentStatus.PENDING)
    add_appointment("13:00", "13:30", AppointmentStatus.PENDING)

    listed = _times(discovery.available_slots(DAY, 60))
    candidates = [f"{h:02d}:{m:02d}" for h in range(9, 18) for m in (0, 30)][:17]
    excluded = [t for t in candidates if t not in listed]

    assert excluded == ["09:30", "10:00", "10:30"]

    for hhmm in candidates:
        start = at(hhmm)
        result = controller.try_admit(start, start + timedelta(minutes=60))
        assert result.admitted == (hhmm in listed), hhmm
        if result.admitted:
            # Restore the ledger for the next candidate
            controller.transition_status(result.record.id, AppointmentStatus.CANCELLED)

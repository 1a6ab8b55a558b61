"""Appointment status parsing and transitions."""
import pytest

from salon.services.capacity import ACTIVE_STATUSES, AppointmentStatus


@pytest.mark.parametrize("raw", ["pending", "Pending", "PENDING", " pending "])
def test_parse_accepts_any_casing(raw):
    assert AppointmentStatus.parse(raw) is AppointmentStatus.PENDING


@pytest.mark.parametrize("raw", ["", "done", "canceled", None, 1])
def test_parse_rejects_unknown_values(raw):
    with pytest.raises(ValueError):
        AppointmentStatus.parse(raw)


def test_only_pending_and_confirmed_consume_capacity():
    assert ACTIVE_STATUSES == {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}
    assert not AppointmentStatus.COMPLETED.consumes_capacity
    assert not AppointmentStatus.CANCELLED.consumes_capacity


def test_state_machine():
    P, C, D, X = (
        AppointmentStatus.PENDING,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    )
    assert P.can_transition_to(C)
    assert P.can_transition_to(X)
    assert C.can_transition_to(D)
    assert C.can_transition_to(X)

    assert not P.can_transition_to(D)
    assert not C.can_transition_to(P)
    for terminal in (D, X):
        assert terminal.is_terminal
        assert not any(terminal.can_transition_to(s) for s in AppointmentStatus)

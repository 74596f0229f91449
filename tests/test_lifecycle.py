import pytest

from app.core.lifecycle import (
    AppointmentAction,
    AppointmentStatus,
    InvalidTransition,
    can_transition,
    next_status,
)

def test_pending_approve_becomes_upcoming():
    assert next_status("pending", "approve") == AppointmentStatus.UPCOMING

def test_reschedule_postpones_from_any_active_state():
    for status in ("pending", "upcoming", "postponed"):
        assert next_status(status, AppointmentAction.RESCHEDULE) == AppointmentStatus.POSTPONED

def test_postponed_can_be_approved_again():
    assert next_status("postponed", "approve") == AppointmentStatus.UPCOMING

def test_cancel_twice_stays_canceled():
    status = next_status("pending", "cancel")
    assert next_status(status, "cancel") == AppointmentStatus.CANCELED

def test_only_upcoming_can_complete():
    assert next_status("upcoming", "complete") == AppointmentStatus.COMPLETED
    assert not can_transition("pending", "complete")

@pytest.mark.parametrize(
    "status, action",
    [
        ("canceled", "approve"),
        ("canceled", "reschedule"),
        ("upcoming", "approve"),
        ("completed", "cancel"),
        ("completed", "reschedule"),
    ],
)
def test_rejected_transitions(status, action):
    with pytest.raises(InvalidTransition) as exc_info:
        next_status(status, action)
    assert str(exc_info.value) == f"Cannot {action} an appointment that is {status}"

def test_unknown_status_is_a_value_error():
    with pytest.raises(ValueError):
        next_status("archived", "approve")

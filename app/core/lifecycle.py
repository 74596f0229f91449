from enum import Enum
from typing import Dict, Tuple

class AppointmentStatus(str, Enum):
    PENDING = "pending"
    UPCOMING = "upcoming"
    POSTPONED = "postponed"
    CANCELED = "canceled"
    COMPLETED = "completed"

class AppointmentAction(str, Enum):
    APPROVE = "approve"
    RESCHEDULE = "reschedule"
    CANCEL = "cancel"
    COMPLETE = "complete"

# Appointments in these states still hold their slot
ACTIVE_STATUSES = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.UPCOMING,
    AppointmentStatus.POSTPONED,
})

S, A = AppointmentStatus, AppointmentAction

TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentAction], AppointmentStatus] = {
    (S.PENDING, A.APPROVE): S.UPCOMING,
    (S.PENDING, A.RESCHEDULE): S.POSTPONED,
    (S.PENDING, A.CANCEL): S.CANCELED,
    (S.UPCOMING, A.RESCHEDULE): S.POSTPONED,
    (S.UPCOMING, A.CANCEL): S.CANCELED,
    (S.UPCOMING, A.COMPLETE): S.COMPLETED,
    (S.POSTPONED, A.APPROVE): S.UPCOMING,
    (S.POSTPONED, A.RESCHEDULE): S.POSTPONED,
    (S.POSTPONED, A.CANCEL): S.CANCELED,
    # Re-canceling keeps the appointment canceled
    (S.CANCELED, A.CANCEL): S.CANCELED,
}

del S, A

class InvalidTransition(Exception):
    def __init__(self, status: AppointmentStatus, action: AppointmentAction):
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action.value} an appointment that is {status.value}")

def next_status(status, action) -> AppointmentStatus:
    """Status reached by applying ``action``; raises InvalidTransition otherwise."""
    status = AppointmentStatus(status)
    action = AppointmentAction(action)
    try:
        return TRANSITIONS[(status, action)]
    except KeyError:
        raise InvalidTransition(status, action) from None

def can_transition(status, action) -> bool:
    return (AppointmentStatus(status), AppointmentAction(action)) in TRANSITIONS

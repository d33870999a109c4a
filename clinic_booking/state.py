"""Flow states for authentication and protected actions.

Each state is its own frozen dataclass carrying only the data that state can
have, so e.g. an OTP challenge cannot coexist with an authenticated patient.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Union

from clinic_booking.models import AppointmentRequest, Patient


class Stage(str, Enum):
    """Discrete stages of the auth + booking flow."""
    ANONYMOUS = "anonymous"
    PENDING_OTP = "pending_otp"
    AUTHENTICATED = "authenticated"
    ACTION_IN_FLIGHT = "action_in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Anonymous:
    stage: ClassVar[Stage] = Stage.ANONYMOUS


@dataclass(frozen=True)
class PendingOtp:
    """OTP sent to ``phone``; ``staged`` is replayed once verified."""
    stage: ClassVar[Stage] = Stage.PENDING_OTP
    phone: str
    staged: Optional[AppointmentRequest] = None


@dataclass(frozen=True)
class Authenticated:
    stage: ClassVar[Stage] = Stage.AUTHENTICATED
    patient: Patient


@dataclass(frozen=True)
class ActionInFlight:
    stage: ClassVar[Stage] = Stage.ACTION_IN_FLIGHT
    patient: Patient
    action: str


@dataclass(frozen=True)
class Succeeded:
    stage: ClassVar[Stage] = Stage.SUCCEEDED
    patient: Patient
    action: str
    result: Any = None


@dataclass(frozen=True)
class Failed:
    """Terminal error for the last attempt; the user must re-invoke."""
    stage: ClassVar[Stage] = Stage.FAILED
    reason: str
    patient: Optional[Patient] = None
    staged: Optional[AppointmentRequest] = None


FlowState = Union[Anonymous, PendingOtp, Authenticated, ActionInFlight, Succeeded, Failed]


# Current stage -> allowed next stages
VALID_TRANSITIONS: Dict[Stage, list[Stage]] = {
    Stage.ANONYMOUS: [
        Stage.PENDING_OTP,
        Stage.AUTHENTICATED,  # Silent re-authentication with a stored token
        Stage.FAILED,  # OTP could not be issued
    ],
    Stage.PENDING_OTP: [
        Stage.AUTHENTICATED,
        Stage.PENDING_OTP,  # Code re-sent
        Stage.ANONYMOUS,  # Challenge closed
        Stage.FAILED,  # Re-send failed
    ],
    Stage.AUTHENTICATED: [
        Stage.AUTHENTICATED,  # Token refreshed
        Stage.ACTION_IN_FLIGHT,
        Stage.PENDING_OTP,  # Stored token turned out stale
        Stage.ANONYMOUS,  # Logout
        Stage.FAILED,
    ],
    Stage.ACTION_IN_FLIGHT: [
        Stage.SUCCEEDED,
        Stage.FAILED,
        Stage.PENDING_OTP,  # 401/403: re-challenge instead of aborting
        Stage.ANONYMOUS,  # 401/403 with no phone to re-challenge
    ],
    Stage.SUCCEEDED: [
        Stage.AUTHENTICATED,
        Stage.ACTION_IN_FLIGHT,
        Stage.PENDING_OTP,
        Stage.ANONYMOUS,
        Stage.FAILED,
    ],
    Stage.FAILED: [
        Stage.AUTHENTICATED,
        Stage.ACTION_IN_FLIGHT,
        Stage.PENDING_OTP,
        Stage.ANONYMOUS,
        Stage.FAILED,
    ],
}


def validate_transition(current: Stage, intended: Stage) -> bool:
    """
    Validate state transition.

    Args:
        current: Current stage
        intended: Intended next stage

    Returns:
        True if transition is valid

    Example:
        >>> validate_transition(Stage.ANONYMOUS, Stage.PENDING_OTP)
        True
        >>> validate_transition(Stage.ANONYMOUS, Stage.SUCCEEDED)
        False
    """
    allowed = VALID_TRANSITIONS.get(current, [])
    return intended in allowed

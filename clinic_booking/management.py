"""Management flow: log in by OTP, list appointments, cancel one.

Cancellation is confirm-then-commit. Marking an appointment only opens the
confirmation; the status change is sent on confirm, and on success the
appointment moves from the upcoming list to the cancelled list locally,
without re-fetching either list. A failed call changes nothing.
"""
import datetime as dt
from typing import List, Optional

from clinic_booking.api import ApiClient
from clinic_booking.appointments import as_cancelled, partition_appointments
from clinic_booking.controller import SessionController
from clinic_booking.errors import AuthenticationError, BookingClientError, InputValidationError
from clinic_booking.logging_config import get_logger
from clinic_booking.models import Appointment, STATUS_CANCELLED
from clinic_booking.otp import OtpInput
from clinic_booking.state import FlowState, PendingOtp, Succeeded
from clinic_booking.validation import validate_login_phone

logger = get_logger(__name__)

ACTION_CANCEL_APPOINTMENT = "cancel_appointment"


class ManagementController:
    """State and events of the manage-appointments screen."""

    def __init__(self, api: ApiClient, sessions: SessionController):
        self.api = api
        self.sessions = sessions
        self.notifier = sessions.notifier

        self.phone = ""
        self.otp = OtpInput()
        self.appointments: List[Appointment] = []
        self.cancelled: List[Appointment] = []
        self.pending_cancellation: Optional[Appointment] = None
        self.loading = True

    @property
    def state(self) -> FlowState:
        return self.sessions.state

    @property
    def is_challenge_open(self) -> bool:
        return isinstance(self.state, PendingOtp)

    @property
    def is_unlocked(self) -> bool:
        return self.sessions.is_authenticated

    # ------------------------------------------------------------------
    # authentication gate

    def start(self) -> bool:
        """Check the stored token; load the lists if it is accepted."""
        try:
            if self.sessions.restore():
                self.refresh()
            return self.is_unlocked
        finally:
            self.loading = False

    def request_code(self, phone: str) -> bool:
        """Send an OTP to a registered phone number."""
        self.phone = phone
        try:
            validate_login_phone(phone)
        except InputValidationError as e:
            self.notifier.error(str(e))
            return False
        self.otp.clear()
        return self.sessions.challenge(phone, register=False)

    def enter_otp_digit(self, index: int, text: str) -> None:
        self.otp.enter(index, text)

    def erase_otp_digit(self, index: int) -> None:
        self.otp.backspace(index)

    def submit_otp(self, code: Optional[str] = None) -> bool:
        verified = self.sessions.verify(code if code is not None else self.otp.value)
        self.otp.clear()
        if verified:
            self.refresh()
        return verified

    def close_challenge(self) -> None:
        self.sessions.cancel_challenge()
        self.otp.clear()

    def logout(self) -> None:
        self.sessions.logout()
        self.appointments = []
        self.cancelled = []
        self.pending_cancellation = None
        self.notifier.success("Logged out successfully.")

    # ------------------------------------------------------------------
    # lists

    def refresh(self) -> None:
        self.fetch_appointments()
        if self.is_unlocked:
            self.fetch_cancelled_appointments()

    def fetch_appointments(self) -> List[Appointment]:
        patient = self.sessions.patient
        if patient is None:
            return []
        try:
            self.appointments = self.api.list_patient_appointments(patient.id)
        except AuthenticationError:
            self.appointments = []
            self.sessions.reauthenticate(patient.contact_number, register=False)
        except BookingClientError as e:
            logger.warning("appointments_fetch_failed", error=str(e))
            self.appointments = []
            self.notifier.error("Failed to fetch appointments.")
        return self.appointments

    def fetch_cancelled_appointments(self) -> List[Appointment]:
        patient = self.sessions.patient
        if patient is None:
            return []
        try:
            cancelled = self.api.list_cancelled_appointments(patient.id)
        except AuthenticationError:
            self.cancelled = []
            self.sessions.reauthenticate(patient.contact_number, register=False)
        except BookingClientError as e:
            logger.warning("cancelled_appointments_fetch_failed", error=str(e))
            self.cancelled = []
            self.notifier.error("Failed to fetch cancelled appointments.")
        else:
            self.cancelled = [as_cancelled(appt) for appt in cancelled]
        return self.cancelled

    def upcoming(self, now: Optional[dt.datetime] = None) -> List[Appointment]:
        """Soonest first, evaluated against ``now`` at call time."""
        return partition_appointments(self.appointments, now)[0]

    def previous(self, now: Optional[dt.datetime] = None) -> List[Appointment]:
        """Most recent first."""
        return partition_appointments(self.appointments, now)[1]

    # ------------------------------------------------------------------
    # cancellation

    def request_cancellation(
        self,
        appointment_id: int,
        now: Optional[dt.datetime] = None
    ) -> Optional[Appointment]:
        """Open the confirmation for an upcoming appointment; nothing is sent yet."""
        self.pending_cancellation = next(
            (appt for appt in self.upcoming(now) if appt.id == appointment_id),
            None
        )
        return self.pending_cancellation

    def dismiss_cancellation(self) -> None:
        self.pending_cancellation = None

    def confirm_cancellation(self) -> bool:
        """
        Send the status change for the pending appointment.

        Returns:
            True if the backend accepted the cancellation
        """
        appointment = self.pending_cancellation
        if appointment is None:
            return False

        try:
            state = self.sessions.run_protected(
                ACTION_CANCEL_APPOINTMENT,
                lambda: self.api.change_appointment_status(appointment.id, STATUS_CANCELLED),
                failure_message="Failed to cancel appointment. Please try again."
            )
        finally:
            self.pending_cancellation = None

        succeeded = isinstance(state, Succeeded)
        self.sessions.acknowledge()
        if not succeeded:
            return False

        self.appointments = [appt for appt in self.appointments if appt.id != appointment.id]
        self.cancelled = self.cancelled + [as_cancelled(appointment)]
        self.notifier.success("Appointment cancelled successfully.")
        return True

"""Booking flow: doctor list -> doctor detail -> form -> OTP -> appointment.

The controller is the page state; its methods are the user events. Whether
the OTP dialog or the success dialog is open follows from the session
controller's state, so the two can never be open at once.
"""
import datetime as dt
from typing import List, Optional

from clinic_booking.api import ApiClient
from clinic_booking.config import ClientSettings
from clinic_booking.controller import SessionController
from clinic_booking.errors import BookingClientError, InputValidationError
from clinic_booking.logging_config import get_logger
from clinic_booking.models import AppointmentRequest, Doctor, PatientSnapshot
from clinic_booking.otp import OtpInput
from clinic_booking.questionnaire import QuestionnaireForm
from clinic_booking.state import FlowState, PendingOtp, Succeeded
from clinic_booking.validation import BookingForm, validate_booking_form

logger = get_logger(__name__)

ACTION_CREATE_APPOINTMENT = "create_appointment"


class BookingController:
    """State and events of the booking screen."""

    def __init__(
        self,
        api: ApiClient,
        sessions: SessionController,
        settings: Optional[ClientSettings] = None
    ):
        self.api = api
        self.sessions = sessions
        self.notifier = sessions.notifier
        self.settings = settings or ClientSettings()

        self.doctors: List[Doctor] = []
        self.available_times: List[str] = []
        self.questionnaire: Optional[QuestionnaireForm] = None
        self.form = BookingForm()
        self.otp = OtpInput()
        self.staged: Optional[AppointmentRequest] = None

    # ------------------------------------------------------------------
    # derived view state

    @property
    def state(self) -> FlowState:
        return self.sessions.state

    @property
    def phone(self) -> str:
        return self.form.phone

    @property
    def is_challenge_open(self) -> bool:
        return isinstance(self.state, PendingOtp)

    @property
    def is_success_open(self) -> bool:
        return (
            isinstance(self.state, Succeeded)
            and self.state.action == ACTION_CREATE_APPOINTMENT
        )

    # ------------------------------------------------------------------
    # page load

    def load(self) -> None:
        """Fetch doctors and questionnaire, then try the stored token."""
        self.fetch_doctors()
        if self.settings.questionnaire_enabled:
            self.load_questionnaire()
        self.sessions.restore()

    def fetch_doctors(self) -> List[Doctor]:
        try:
            self.doctors = self.api.list_doctors()
        except BookingClientError as e:
            logger.warning("doctors_fetch_failed", error=str(e))
            self.doctors = []
            self.notifier.error("Failed to fetch doctors. Please try again.")
        return self.doctors

    def load_questionnaire(self) -> None:
        try:
            questionnaire = self.api.get_questionnaire(self.settings.questionnaire_id)
        except BookingClientError as e:
            logger.warning("questionnaire_fetch_failed", error=str(e))
            self.notifier.error("Failed to load questionnaire.")
            return
        self.questionnaire = QuestionnaireForm(questionnaire)

    # ------------------------------------------------------------------
    # form events

    def select_doctor(self, doctor_id: int) -> Optional[Doctor]:
        self.form.doctor = next((d for d in self.doctors if d.id == doctor_id), None)
        self.refresh_times()
        return self.form.doctor

    def select_date(self, day: Optional[dt.date]) -> List[str]:
        self.form.date = day
        self.form.time = ""
        return self.refresh_times()

    def refresh_times(self) -> List[str]:
        """Reload free slots for the selected doctor on the selected day."""
        doctor, day = self.form.doctor, self.form.date
        if doctor is None or day is None:
            self.available_times = []
            return self.available_times

        try:
            by_date = self.api.get_available_times(doctor.id, day, day)
        except BookingClientError as e:
            logger.warning("available_times_fetch_failed", doctor_id=doctor.id, error=str(e))
            self.notifier.error("Failed to load available times.")
            by_date = {}
        self.available_times = list(by_date.get(day.isoformat(), []))
        return self.available_times

    def select_time(self, slot: str) -> None:
        self.form.time = slot

    def answer_question(self, index: int, value: Optional[str]) -> None:
        if self.questionnaire is None:
            raise InputValidationError("No questionnaire is loaded")
        self.questionnaire.set_answer(index, value)

    def accept_terms(self, accepted: bool = True) -> None:
        self.form.terms_accepted = accepted

    # ------------------------------------------------------------------
    # submission

    def build_request(self) -> AppointmentRequest:
        validate_booking_form(self.form)
        questionnaire = None
        if self.settings.questionnaire_enabled and self.questionnaire is not None:
            questionnaire = self.questionnaire.to_payload()
        return AppointmentRequest(
            doctor_id=self.form.doctor.id,
            date=self.form.date,
            time=self.form.time,
            patient=PatientSnapshot(
                first_name=self.form.first_name,
                last_name=self.form.last_name,
                contact_number=self.form.phone,
            ),
            questionnaire=questionnaire,
        )

    def submit(self) -> FlowState:
        """
        Book the appointment, authenticating first if needed.

        Returns:
            Resulting flow state
        """
        try:
            staged = self.build_request()
        except InputValidationError as e:
            self.notifier.error(str(e))
            return self.state
        self.staged = staged

        token = self.sessions.session.token
        if not token:
            self._challenge()
            return self.state

        try:
            result = self.api.authenticate_token(token)
        except BookingClientError as e:
            logger.warning("token_validation_failed", error=str(e))
            self.sessions.session.clear()
            self.notifier.error("Token validation failed. Please verify via OTP.")
            self._challenge()
            return self.state

        self.sessions.adopt(result, token)
        return self._create(staged)

    def _challenge(self) -> bool:
        return self.sessions.challenge(
            self.staged.patient.contact_number,
            register=True,
            staged=self.staged
        )

    def _create(self, staged: AppointmentRequest) -> FlowState:
        state = self.sessions.run_protected(
            ACTION_CREATE_APPOINTMENT,
            lambda: self.api.create_appointment(staged),
            phone=staged.patient.contact_number,
            register=True,
            staged=staged,
            failure_message="Failed to create appointment. Please try again."
        )
        if isinstance(state, Succeeded):
            self.notifier.success("Appointment created successfully!")
        return state

    # ------------------------------------------------------------------
    # OTP dialog

    def enter_otp_digit(self, index: int, text: str) -> None:
        self.otp.enter(index, text)

    def erase_otp_digit(self, index: int) -> None:
        self.otp.backspace(index)

    def submit_otp(self, code: Optional[str] = None) -> FlowState:
        """Verify the code; on success book the staged appointment."""
        verified = self.sessions.verify(code if code is not None else self.otp.value)
        self.otp.clear()
        if not verified:
            return self.state

        staged = self.sessions.take_staged() or self.staged
        if staged is None:
            return self.state
        return self._create(staged)

    def request_code(self, phone: str) -> bool:
        """Send a new code from the dialog, possibly to a corrected number."""
        self.form.phone = phone
        if self.staged is not None:
            self.staged = self.staged.model_copy(update={
                "patient": self.staged.patient.model_copy(update={"contact_number": phone})
            })
        self.otp.clear()
        return self.sessions.challenge(phone, register=True, staged=self.staged)

    def close_challenge(self) -> None:
        self.sessions.cancel_challenge()
        self.otp.clear()

    def close_success(self) -> None:
        self.sessions.acknowledge()

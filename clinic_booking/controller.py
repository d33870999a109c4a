"""Session controller: phone OTP authentication wrapped around protected actions.

Flow (booking):
    Anonymous --submit--> [create patient, send OTP] --> PendingOtp
    PendingOtp --valid code--> Authenticated --replay staged--> ActionInFlight
    ActionInFlight --ok--> Succeeded | --401/403--> PendingOtp | --error--> Failed

A stored token that the backend accepts skips the OTP challenge. A token that
is rejected at any point is erased and the patient is challenged again rather
than the attempt failing outright. Calls are strictly sequential.
"""
from typing import Any, Callable, Optional

from clinic_booking.api import ApiClient
from clinic_booking.errors import (
    AuthenticationError,
    BookingClientError,
    InvalidTransitionError,
    NotAuthenticatedError,
    PhoneNotRegisteredError,
)
from clinic_booking.logging_config import get_logger
from clinic_booking.models import AppointmentRequest, AuthResult, Patient
from clinic_booking.notifications import Notifier
from clinic_booking.otp import is_valid_otp
from clinic_booking.session import AuthSession
from clinic_booking.state import (
    ActionInFlight,
    Anonymous,
    Authenticated,
    Failed,
    FlowState,
    PendingOtp,
    Stage,
    Succeeded,
    validate_transition,
)

logger = get_logger(__name__)


class SessionController:
    """Owns the flow state and the token lifecycle for one front end."""

    def __init__(
        self,
        api: ApiClient,
        session: AuthSession,
        notifier: Optional[Notifier] = None
    ):
        self.api = api
        self.session = session
        self.notifier = notifier or Notifier()
        self.state: FlowState = Anonymous()
        self._verified_staged: Optional[AppointmentRequest] = None

    @property
    def patient(self) -> Optional[Patient]:
        return getattr(self.state, "patient", None)

    @property
    def is_authenticated(self) -> bool:
        return self.patient is not None and self.session.is_authenticated

    def _move(self, new_state: FlowState) -> FlowState:
        if not validate_transition(self.state.stage, new_state.stage):
            raise InvalidTransitionError(
                f"Cannot go from {self.state.stage.value} to {new_state.stage.value}"
            )
        logger.info(
            "flow_transition",
            from_stage=self.state.stage.value,
            to_stage=new_state.stage.value
        )
        self.state = new_state
        return new_state

    # ------------------------------------------------------------------
    # authentication

    def adopt(self, result: AuthResult, token: str) -> Patient:
        """
        Accept a successful token check.

        Args:
            result: authenticate_token response
            token: Token that was checked; replaced if the backend issued a fresh one
        """
        self.session.update(result.token or token, result.patient.id)
        self._move(Authenticated(result.patient))
        return result.patient

    def restore(self) -> bool:
        """
        Silent re-authentication with the stored token.

        Returns:
            True if the backend accepted the token
        """
        token = self.session.token
        if not token:
            return False

        try:
            result = self.api.authenticate_token(token)
        except BookingClientError as e:
            logger.warning("stored_token_rejected", error=str(e))
            self.session.clear()
            self.notifier.error("Authentication failed. Please log in again.")
            return False

        self.adopt(result, token)
        return True

    def challenge(
        self,
        phone: str,
        register: bool = True,
        staged: Optional[AppointmentRequest] = None
    ) -> bool:
        """
        Send an OTP to ``phone`` and wait for the code.

        Args:
            phone: Patient contact number
            register: Create the patient first (booking flow)
            staged: Action to replay after verification

        Returns:
            True if the OTP was sent and the flow is now PendingOtp
        """
        try:
            if register:
                self.api.create_patient(phone)
            self.api.generate_otp(phone)
        except PhoneNotRegisteredError:
            self.notifier.error("This phone number is not registered in our system.")
            self._move(Failed("Phone number not registered", staged=staged))
            return False
        except BookingClientError as e:
            logger.warning("otp_request_failed", error=str(e), transient=e.transient)
            self.notifier.error("Failed to send OTP. Please try again.")
            self._move(Failed("OTP could not be sent", staged=staged))
            return False

        if self.session.token:
            self.session.clear()
        self._move(PendingOtp(phone=phone, staged=staged))
        self.notifier.info("OTP sent successfully.")
        return True

    def verify(self, code: str) -> bool:
        """
        Exchange the entered code for a session.

        A wrong code keeps the challenge open; there is no attempt limit.

        Raises:
            InvalidTransitionError: No challenge is open
        """
        state = self.state
        if not isinstance(state, PendingOtp):
            raise InvalidTransitionError("No OTP challenge is open")

        if not is_valid_otp(code):
            self.notifier.error("Please enter the 6-digit code.")
            return False

        try:
            result = self.api.verify_otp(state.phone, code)
        except BookingClientError as e:
            logger.warning("otp_verification_failed", error=str(e))
            self.notifier.error("OTP verification failed. Please try again.")
            return False

        self.session.update(result.token, result.patient.id)
        self._verified_staged = state.staged
        self._move(Authenticated(result.patient))
        self.notifier.success("OTP verified successfully!")
        return True

    def take_staged(self) -> Optional[AppointmentRequest]:
        """Staged action released by the last successful verification."""
        staged, self._verified_staged = self._verified_staged, None
        return staged

    def cancel_challenge(self) -> None:
        if isinstance(self.state, PendingOtp):
            self._move(Anonymous())

    def reauthenticate(
        self,
        phone: Optional[str],
        register: bool = False,
        staged: Optional[AppointmentRequest] = None
    ) -> FlowState:
        """Erase the token and challenge again (or drop to Anonymous without a phone)."""
        self.session.clear()
        self.notifier.error("Authentication failed. Please verify via OTP.")
        if phone:
            self.challenge(phone, register=register, staged=staged)
        else:
            self._move(Anonymous())
        return self.state

    # ------------------------------------------------------------------
    # protected actions

    def run_protected(
        self,
        action: str,
        call: Callable[[], Any],
        phone: Optional[str] = None,
        register: bool = False,
        staged: Optional[AppointmentRequest] = None,
        failure_message: str = "Something went wrong. Please try again."
    ) -> FlowState:
        """
        Run a call that needs the bearer token.

        Args:
            action: Name for logs and state
            call: Zero-argument callable doing the request
            phone: Number to re-challenge on 401/403 (defaults to the patient's)
            register: Create the patient before re-challenging
            staged: Action to replay after a re-challenge
            failure_message: Notification for non-auth failures

        Returns:
            Resulting state: Succeeded, Failed, PendingOtp or Anonymous

        Raises:
            NotAuthenticatedError: No authenticated patient
        """
        patient = self.patient
        if patient is None or not self.session.is_authenticated:
            raise NotAuthenticatedError(f"{action} requires an authenticated patient")

        self._move(ActionInFlight(patient, action))
        try:
            result = call()
        except AuthenticationError as e:
            logger.warning("protected_call_rejected", action=action, status=e.status_code)
            return self.reauthenticate(
                phone or patient.contact_number,
                register=register,
                staged=staged
            )
        except BookingClientError as e:
            logger.warning("protected_call_failed", action=action, error=str(e), transient=e.transient)
            self.notifier.error(failure_message)
            return self._move(Failed(str(e), patient=patient, staged=staged))

        logger.info("protected_call_succeeded", action=action)
        return self._move(Succeeded(patient, action, result))

    def acknowledge(self) -> None:
        """Leave a terminal state once the user has seen the outcome."""
        if self.state.stage not in (Stage.SUCCEEDED, Stage.FAILED):
            return
        if self.patient is not None and self.session.is_authenticated:
            self._move(Authenticated(self.patient))
        else:
            self._move(Anonymous())

    def logout(self) -> None:
        self.session.clear()
        if self.state.stage is not Stage.ANONYMOUS:
            self._move(Anonymous())

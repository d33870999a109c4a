"""API gateway client for the practice backend.

Two call paths share one HTTP session:
- public calls go out without credentials
- protected calls attach ``Authorization: Bearer <token>`` from the AuthSession;
  a 401 on a protected call invalidates that session before raising
"""
import datetime as dt
from typing import Any, Dict, List, Optional

import requests

from clinic_booking.errors import (
    DecodeError,
    NotFoundError,
    PhoneNotRegisteredError,
    TransportError,
    UnauthorizedError,
    error_for_response,
)
from clinic_booking.http_client import create_http_session
from clinic_booking.logging_config import generate_request_id, get_logger
from clinic_booking.models import (
    Appointment,
    AppointmentRequest,
    AuthResult,
    Doctor,
    Patient,
    Questionnaire,
    STATUS_UNCONFIRMED,
    decode,
    decode_availability,
)
from clinic_booking.session import AuthSession

logger = get_logger(__name__)


class ApiClient:
    """Typed access to every backend endpoint the booking client uses."""

    def __init__(
        self,
        base_url: str,
        session: AuthSession,
        http: Optional[requests.Session] = None,
        timeout: float = 15,
        max_retries: int = 2,
        backoff_factor: float = 0.5
    ):
        """
        Initialize client.

        Args:
            base_url: Backend base URL (trailing slash optional)
            session: Auth session providing and receiving the bearer token
            http: Pre-built requests session (defaults to create_http_session())
            timeout: Request timeout in seconds
            max_retries: GET retries on transport errors
            backoff_factor: Exponential backoff multiplier
        """
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.http = http or create_http_session(
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            timeout=timeout
        )

    # ------------------------------------------------------------------
    # transport

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        authenticated: bool = False,
        **kwargs
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            TransportError: Network failure or timeout
            ApiError: Non-2xx response (subclass by status)
            DecodeError: Body is not JSON
        """
        request_id = generate_request_id()
        headers = kwargs.pop("headers", {})
        headers["X-Request-ID"] = request_id
        if authenticated:
            token = self.session.token
            if token:
                headers["Authorization"] = f"Bearer {token}"

        send = getattr(self.http, method.lower())
        try:
            response = send(self._url(path), headers=headers, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.warning("api_timeout", method=method, path=path, request_id=request_id)
            raise TransportError(f"Request to {path} timed out") from e
        except requests.exceptions.RequestException as e:
            logger.warning("api_transport_failure", method=method, path=path, request_id=request_id, error=str(e))
            raise TransportError(f"Could not reach backend: {e}") from e

        logger.info("api_response", method=method, path=path, status=response.status_code, request_id=request_id)

        if response.status_code == 401 and authenticated:
            self.session.invalidate(reason=f"401 on {method} {path}")
            raise UnauthorizedError(401, "Session expired")

        if response.status_code >= 400:
            raise error_for_response(response)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Non-JSON response from {path}") from e

    # ------------------------------------------------------------------
    # public endpoints

    def list_doctors(self) -> List[Doctor]:
        """GET /doctors/?filter_by_active=1 - active doctors."""
        data = self._request("GET", "/doctors/", params={"filter_by_active": 1})
        return decode(List[Doctor], data, "doctors")

    def get_doctor(self, doctor_id: int) -> Doctor:
        """GET /doctors/{id}/?with_profile_picture=1 - one doctor with image."""
        data = self._request(
            "GET",
            f"/doctors/{doctor_id}/",
            params={"with_profile_picture": 1}
        )
        return decode(Doctor, data, "doctor")

    def get_available_times(
        self,
        doctor_id: int,
        start_date: dt.date,
        end_date: Optional[dt.date] = None
    ) -> Dict[str, List[str]]:
        """
        Available slots for a doctor.

        Args:
            doctor_id: Doctor ID
            start_date: First day of the range
            end_date: Last day of the range (defaults to start_date)

        Returns:
            Mapping of ISO date -> list of time strings (empty if none)
        """
        end_date = end_date or start_date
        data = self._request(
            "GET",
            f"/doctors/{doctor_id}/available_appointments/",
            params={
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            }
        )
        return decode_availability(data, doctor_id)

    def create_patient(self, contact_number: str) -> Patient:
        """POST /patients/ - create or return the patient for a phone number."""
        data = self._request("POST", "/patients/", json={"contact_number": contact_number})
        return decode(Patient, data, "patients")

    def generate_otp(self, contact_number: str) -> None:
        """
        POST /patients/generate_otp/ - send an OTP to the phone.

        Raises:
            PhoneNotRegisteredError: Backend answered 404
        """
        try:
            self._request(
                "POST",
                "/patients/generate_otp/",
                json={"contact_number": contact_number}
            )
        except NotFoundError as e:
            raise PhoneNotRegisteredError(e.status_code, e.detail) from e

    def create_patient_and_generate_otp(self, contact_number: str) -> None:
        """POST /patients/create_and_generate_otp/ - both steps in one call."""
        self._request(
            "POST",
            "/patients/create_and_generate_otp/",
            json={"contact_number": contact_number}
        )

    def verify_otp(self, contact_number: str, otp: str) -> AuthResult:
        """POST /login/patient/ (multipart form) - exchange an OTP for a token."""
        data = self._request(
            "POST",
            "/login/patient/",
            files={
                "contact_number": (None, contact_number),
                "otp": (None, otp),
            }
        )
        result = decode(AuthResult, data, "login/patient")
        if not result.token:
            raise DecodeError("OTP login response did not include a token")
        return result

    def authenticate_token(self, token: str) -> AuthResult:
        """POST /authenticate_token/ - validate (and possibly refresh) a stored token."""
        data = self._request("POST", "/authenticate_token/", json={"token": token})
        return decode(AuthResult, data, "authenticate_token")

    def get_questionnaire(self, questionnaire_id: int) -> Questionnaire:
        data = self._request("GET", f"/questionnaires/{questionnaire_id}/")
        return decode(Questionnaire, data, "questionnaires")

    # ------------------------------------------------------------------
    # protected endpoints

    def create_appointment(self, request: AppointmentRequest) -> Dict[str, Any]:
        """POST /appointments/ - book the staged appointment."""
        data = self._request(
            "POST",
            "/appointments/",
            authenticated=True,
            json=request.to_payload()
        )
        return decode(Dict[str, Any], data, "appointments")

    def edit_appointment(
        self,
        appointment_id: int,
        request: AppointmentRequest,
        status: str = STATUS_UNCONFIRMED
    ) -> Dict[str, Any]:
        """PUT /appointments/{id}/ - replace date, time and patient details."""
        payload = request.to_payload()
        payload.pop("questionnaire_data")
        payload["status"] = status
        data = self._request(
            "PUT",
            f"/appointments/{appointment_id}/",
            authenticated=True,
            json=payload
        )
        return decode(Dict[str, Any], data, "appointments")

    def list_patient_appointments(self, patient_id: int) -> List[Appointment]:
        data = self._request(
            "GET",
            f"/patients/{patient_id}/appointments/",
            authenticated=True
        )
        return decode(List[Appointment], data, "patient appointments")

    def list_cancelled_appointments(self, patient_id: int) -> List[Appointment]:
        data = self._request(
            "GET",
            f"/patients/{patient_id}/cancelled_appointments/",
            authenticated=True
        )
        return decode(List[Appointment], data, "cancelled appointments")

    def change_appointment_status(self, appointment_id: int, status: str) -> None:
        """POST /appointments/change-status/."""
        self._request(
            "POST",
            "/appointments/change-status/",
            authenticated=True,
            json={"appointment_id": appointment_id, "appointment_status": status}
        )

"""Unit tests for the API client.

Uses a mocked requests session; nothing goes over the network.
"""
import datetime as dt
from unittest.mock import Mock

import pytest
import requests

from clinic_booking import config
from clinic_booking.api import ApiClient
from clinic_booking.errors import (
    BadRequestError,
    DecodeError,
    ForbiddenError,
    NotFoundError,
    PhoneNotRegisteredError,
    ServerError,
    TransportError,
    UnauthorizedError,
)
from clinic_booking.models import AppointmentRequest, PatientSnapshot

BASE_URL = "http://backend.test"

DOCTORS = [
    {"id": 1, "first_name": "Naledi", "last_name": "Mokoena", "medicalAid": ["Discovery"]},
    {"id": 2, "first_name": "Pieter", "last_name": "van Wyk"},
]

PATIENT = {"id": 7, "first_name": "", "last_name": "", "contact_number": "0821234567"}


@pytest.fixture
def http():
    return Mock()


@pytest.fixture
def client(http, auth_session):
    return ApiClient(BASE_URL + "/", auth_session, http=http)


@pytest.fixture
def staged():
    return AppointmentRequest(
        doctor_id=1,
        date=dt.date(2025, 1, 20),
        time="09:30",
        patient=PatientSnapshot(first_name="Thandi", last_name="Nkosi", contact_number="0821234567"),
    )


class TestTransport:

    def test_request_id_header_on_every_call(self, client, http, make_response):
        http.get.return_value = make_response(body=DOCTORS)

        client.list_doctors()

        headers = http.get.call_args.kwargs["headers"]
        assert headers["X-Request-ID"].startswith("req-")
        assert "Authorization" not in headers

    def test_public_call_never_sends_token(self, client, http, auth_session, make_response):
        auth_session.update("secret", 7)
        http.get.return_value = make_response(body=DOCTORS)

        client.list_doctors()

        assert "Authorization" not in http.get.call_args.kwargs["headers"]

    def test_timeout_becomes_transport_error(self, client, http):
        http.get.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(TransportError) as exc_info:
            client.list_doctors()

        assert exc_info.value.transient is True

    def test_connection_error_becomes_transport_error(self, client, http):
        http.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(TransportError):
            client.create_patient("0821234567")

    def test_non_json_body_is_decode_error(self, client, http, make_response):
        http.get.return_value = make_response(200, text="<html>oops</html>")

        with pytest.raises(DecodeError):
            client.list_doctors()

    @pytest.mark.parametrize("status,error", [
        (400, BadRequestError),
        (404, NotFoundError),
        (500, ServerError),
        (503, ServerError),
    ])
    def test_status_mapping(self, client, http, make_response, status, error):
        http.get.return_value = make_response(status, body={"detail": "nope"})

        with pytest.raises(error) as exc_info:
            client.get_doctor(1)

        assert exc_info.value.status_code == status


class TestPublicEndpoints:

    def test_list_doctors(self, client, http, make_response):
        http.get.return_value = make_response(body=DOCTORS)

        doctors = client.list_doctors()

        assert [d.full_name for d in doctors] == ["Naledi Mokoena", "Pieter van Wyk"]
        assert doctors[0].medical_aid == ["Discovery"]
        http.get.assert_called_once()
        assert http.get.call_args.args[0] == f"{BASE_URL}/doctors/"
        assert http.get.call_args.kwargs["params"] == {"filter_by_active": 1}

    def test_list_doctors_rejects_envelope(self, client, http, make_response):
        """Only a plain list is accepted."""
        http.get.return_value = make_response(body={"results": DOCTORS})

        with pytest.raises(DecodeError):
            client.list_doctors()

    def test_get_doctor_requests_picture(self, client, http, make_response):
        http.get.return_value = make_response(body={**DOCTORS[0], "image": "data:..."})

        doctor = client.get_doctor(1)

        assert doctor.image == "data:..."
        assert http.get.call_args.kwargs["params"] == {"with_profile_picture": 1}

    def test_available_times(self, client, http, make_response):
        http.get.return_value = make_response(body={
            "3": {"available_appointments": {"2025-01-20": ["09:00", "09:30"]}}
        })

        times = client.get_available_times(3, dt.date(2025, 1, 20))

        assert times == {"2025-01-20": ["09:00", "09:30"]}
        assert http.get.call_args.args[0] == f"{BASE_URL}/doctors/3/available_appointments/"
        assert http.get.call_args.kwargs["params"] == {
            "start_date": "2025-01-20",
            "end_date": "2025-01-20",
        }

    def test_available_times_missing_doctor_key_is_empty(self, client, http, make_response):
        http.get.return_value = make_response(body={})

        assert client.get_available_times(3, dt.date(2025, 1, 20)) == {}

    def test_generate_otp_404_is_phone_not_registered(self, client, http, make_response):
        http.post.return_value = make_response(404, body={"detail": "Patient not found"})

        with pytest.raises(PhoneNotRegisteredError) as exc_info:
            client.generate_otp("0820000000")

        assert exc_info.value.status_code == 404

    def test_create_patient_and_generate_otp(self, client, http, make_response):
        http.post.return_value = make_response(body={"detail": "OTP sent"})

        client.create_patient_and_generate_otp("0821234567")

        assert http.post.call_args.args[0] == f"{BASE_URL}/patients/create_and_generate_otp/"
        assert http.post.call_args.kwargs["json"] == {"contact_number": "0821234567"}

    def test_verify_otp_sends_multipart(self, client, http, make_response):
        http.post.return_value = make_response(body={"token": "abc", "patient": PATIENT})

        result = client.verify_otp("0821234567", "123456")

        assert result.token == "abc"
        assert result.patient.id == 7
        assert http.post.call_args.kwargs["files"] == {
            "contact_number": (None, "0821234567"),
            "otp": (None, "123456"),
        }

    def test_verify_otp_without_token_is_decode_error(self, client, http, make_response):
        http.post.return_value = make_response(body={"patient": PATIENT})

        with pytest.raises(DecodeError):
            client.verify_otp("0821234567", "123456")

    def test_authenticate_token(self, client, http, make_response):
        http.post.return_value = make_response(body={"token": "abc", "patient": PATIENT})

        result = client.authenticate_token("abc")

        assert result.patient.contact_number == "0821234567"
        assert http.post.call_args.kwargs["json"] == {"token": "abc"}

    def test_authenticate_token_401_does_not_invalidate(self, client, http, auth_session, make_response):
        """The token check is a public call; clearing is the caller's decision."""
        auth_session.update("abc", 7)
        http.post.return_value = make_response(401, body={"detail": "Invalid token"})

        with pytest.raises(UnauthorizedError):
            client.authenticate_token("abc")

        assert auth_session.token == "abc"

    def test_get_questionnaire(self, client, http, make_response):
        http.get.return_value = make_response(body={
            "id": 1,
            "name": "Medical Questionnaire",
            "questions": [{"question_text": "Allergies?", "question_type": "text"}],
        })

        questionnaire = client.get_questionnaire(1)

        assert questionnaire.questions[0].question_text == "Allergies?"


class TestProtectedEndpoints:

    def test_create_appointment_sends_bearer_and_payload(
        self, client, http, auth_session, staged, make_response
    ):
        auth_session.update("abc", 7)
        http.post.return_value = make_response(201, body={"id": 1001, "status": "UNC"})

        result = client.create_appointment(staged)

        assert result["id"] == 1001
        kwargs = http.post.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer abc"
        assert kwargs["json"] == {
            "date": "2025-01-20",
            "time": "09:30",
            "doctor_id": 1,
            "patient": {
                "first_name": "Thandi",
                "last_name": "Nkosi",
                "contact_number": "0821234567",
            },
            "booked_by_patient": 1,
            "questionnaire_data": None,
        }

    def test_401_invalidates_session(self, client, http, auth_session, make_response):
        auth_session.update("abc", 7)
        listener = Mock()
        auth_session.add_invalidation_listener(listener)
        http.get.return_value = make_response(401, body={"detail": "expired"})

        with pytest.raises(UnauthorizedError):
            client.list_patient_appointments(7)

        assert auth_session.token is None
        assert auth_session.patient_id is None
        listener.assert_called_once()

    def test_403_keeps_session(self, client, http, auth_session, make_response):
        auth_session.update("abc", 7)
        http.get.return_value = make_response(403, body={"detail": "forbidden"})

        with pytest.raises(ForbiddenError):
            client.list_patient_appointments(7)

        assert auth_session.token == "abc"

    def test_edit_appointment(self, client, http, auth_session, staged, make_response):
        auth_session.update("abc", 7)
        http.put.return_value = make_response(body={"id": 5, "status": "UNC"})

        client.edit_appointment(5, staged)

        assert http.put.call_args.args[0] == f"{BASE_URL}/appointments/5/"
        payload = http.put.call_args.kwargs["json"]
        assert payload["status"] == "UNC"
        assert "questionnaire_data" not in payload

    def test_list_appointments(self, client, http, auth_session, make_response):
        auth_session.update("abc", 7)
        http.get.return_value = make_response(body=[
            {"id": 1, "doctor": {"first_name": "Naledi", "last_name": "Mokoena"},
             "date": "2025-01-20", "time": "09:30", "status": "UNC"},
        ])

        appointments = client.list_patient_appointments(7)

        assert appointments[0].starts_at == dt.datetime(2025, 1, 20, 9, 30)
        assert appointments[0].doctor_name == "Naledi Mokoena"

    def test_list_cancelled_appointments_bad_shape(self, client, http, auth_session, make_response):
        auth_session.update("abc", 7)
        http.get.return_value = make_response(body=[{"id": 1}])

        with pytest.raises(DecodeError):
            client.list_cancelled_appointments(7)

    def test_change_status(self, client, http, auth_session, make_response):
        auth_session.update("abc", 7)
        http.post.return_value = make_response(204)

        assert client.change_appointment_status(12, "CNC") is None

        assert http.post.call_args.args[0] == f"{BASE_URL}/appointments/change-status/"
        assert http.post.call_args.kwargs["json"] == {
            "appointment_id": 12,
            "appointment_status": "CNC",
        }


def test_default_http_session_is_built(auth_session):
    client = ApiClient(config.MOCK_API_BASE_URL, auth_session, timeout=3, max_retries=0)

    assert client.base_url == config.MOCK_API_BASE_URL
    assert client.http is not None

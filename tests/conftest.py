"""Shared test fixtures."""
import datetime as dt
import json
from unittest.mock import Mock

import pytest

from clinic_booking.api import ApiClient
from clinic_booking.controller import SessionController
from clinic_booking.models import Appointment, AuthResult, Doctor, Patient
from clinic_booking.notifications import Notifier
from clinic_booking.session import AuthSession
from clinic_booking.token_store import MemoryTokenStore

PHONE = "0821234567"


@pytest.fixture(autouse=True)
def setup_env(monkeypatch):
    """Keep a developer's .env from leaking into settings tests."""
    for name in (
        "BOOKING_API_BASE_URL",
        "BOOKING_QUESTIONNAIRE_ENABLED",
        "BOOKING_QUESTIONNAIRE_ID",
        "BOOKING_REQUEST_TIMEOUT",
        "BOOKING_MAX_RETRIES",
        "BOOKING_BACKOFF_FACTOR",
        "BOOKING_TOKEN_STORE_URL",
        "BOOKING_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def store():
    return MemoryTokenStore()


@pytest.fixture
def auth_session(store):
    return AuthSession(store)


@pytest.fixture
def patient():
    return Patient(id=7, first_name="Thandi", last_name="Nkosi", contact_number=PHONE)


@pytest.fixture
def doctor():
    return Doctor(
        id=1,
        first_name="Naledi",
        last_name="Mokoena",
        about="Family medicine",
        qualifications="MBChB",
        pricing="Consultation from R550",
        medicalAid=["Discovery"],
    )


@pytest.fixture
def auth_result(patient):
    return AuthResult(token="fresh-token", patient=patient)


@pytest.fixture
def mock_api():
    """ApiClient double; every call succeeds with None unless configured."""
    return Mock(spec=ApiClient)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def sessions(mock_api, auth_session, notifier):
    return SessionController(mock_api, auth_session, notifier)


@pytest.fixture
def make_appointment():
    """Create an Appointment for a date and time."""
    counter = {"id": 0}

    def _create(day: str, time: str = "10:00", status: str = "UNC", **extra):
        counter["id"] += 1
        return Appointment(
            id=extra.pop("id", counter["id"]),
            doctor={"id": 1, "first_name": "Naledi", "last_name": "Mokoena"},
            date=dt.date.fromisoformat(day),
            time=time,
            status=status,
            **extra
        )
    return _create


@pytest.fixture
def make_response():
    """Create a requests.Response double."""
    def _create(status_code: int = 200, body=None, text: str = None):
        response = Mock()
        response.status_code = status_code
        response.reason = "OK" if status_code < 400 else "Error"
        if body is not None:
            response.content = json.dumps(body).encode()
            response.json.return_value = body
            response.text = json.dumps(body)
        else:
            response.content = (text or "").encode()
            response.text = text or ""
            response.json.side_effect = ValueError("No JSON")
        return response
    return _create

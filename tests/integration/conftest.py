"""Fixtures wiring the real client stack to the in-process mock backend."""
import datetime as dt

import pytest

import mock_api
from clinic_booking.api import ApiClient
from clinic_booking.controller import SessionController
from clinic_booking.notifications import Notifier
from clinic_booking.session import AuthSession
from clinic_booking.token_store import MemoryTokenStore
from tests.utils.flask_adapter import TEST_BASE_URL, mounted_session


@pytest.fixture(autouse=True)
def backend():
    """Fresh in-memory backend for each test."""
    mock_api.reset_storage()
    yield mock_api
    mock_api.reset_storage()


@pytest.fixture
def client():
    """Flask test client for raw endpoint checks."""
    with mock_api.app.test_client() as test_client:
        yield test_client


@pytest.fixture
def wire():
    """(ApiClient, SessionController, adapter) sharing one token store."""
    def _build(store=None):
        http, adapter = mounted_session(mock_api.app)
        session = AuthSession(store if store is not None else MemoryTokenStore())
        api = ApiClient(TEST_BASE_URL, session, http=http)
        return api, SessionController(api, session, Notifier()), adapter
    return _build


@pytest.fixture
def clinic_day():
    """A weekday a few days out, inside the booking window."""
    day = dt.date.today() + dt.timedelta(days=2)
    while day.weekday() >= 5:
        day += dt.timedelta(days=1)
    return day

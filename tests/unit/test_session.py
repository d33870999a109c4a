"""Tests for the explicit auth session."""
from unittest.mock import Mock

from clinic_booking import config
from clinic_booking.session import AuthSession
from clinic_booking.token_store import MemoryTokenStore


def test_starts_unauthenticated(auth_session):
    assert auth_session.token is None
    assert auth_session.patient_id is None
    assert not auth_session.is_authenticated


def test_update_persists_to_store(auth_session, store):
    auth_session.update("abc", 7)

    assert store.get(config.TOKEN_KEY) == "abc"
    assert store.get(config.PATIENT_ID_KEY) == "7"
    assert auth_session.patient_id == 7
    assert auth_session.is_authenticated


def test_update_without_patient_keeps_previous(auth_session):
    auth_session.update("abc", 7)
    auth_session.update("def")

    assert auth_session.token == "def"
    assert auth_session.patient_id == 7


def test_session_reads_existing_store():
    store = MemoryTokenStore({config.TOKEN_KEY: "saved", config.PATIENT_ID_KEY: "3"})

    session = AuthSession(store)

    assert session.token == "saved"
    assert session.patient_id == 3


def test_clear_does_not_notify(auth_session):
    listener = Mock()
    auth_session.add_invalidation_listener(listener)
    auth_session.update("abc", 7)

    auth_session.clear()

    assert auth_session.token is None
    listener.assert_not_called()


def test_invalidate_clears_and_notifies(auth_session):
    listener = Mock()
    auth_session.add_invalidation_listener(listener)
    auth_session.update("abc", 7)

    auth_session.invalidate("401 on GET /x")

    assert auth_session.token is None
    assert auth_session.patient_id is None
    listener.assert_called_once_with("401 on GET /x")


def test_removed_listener_is_not_called(auth_session):
    listener = Mock()
    auth_session.add_invalidation_listener(listener)
    auth_session.remove_invalidation_listener(listener)
    auth_session.remove_invalidation_listener(listener)

    auth_session.invalidate()

    listener.assert_not_called()

"""Explicit authentication session shared by the API client and controllers."""
from typing import Callable, List, Optional

from clinic_booking import config
from clinic_booking.logging_config import get_logger
from clinic_booking.token_store import MemoryTokenStore, TokenStore

logger = get_logger(__name__)

InvalidationListener = Callable[[str], None]


class AuthSession:
    """
    Bearer token and patient id for the current patient.

    Responsibilities:
    - Read/write the token and patient id in durable storage
    - Tear the session down on logout or 401 (invalidate)
    - Tell listeners when the backend invalidated the session, so the
      front end can send the user back to a login surface
    """

    def __init__(self, store: Optional[TokenStore] = None):
        self.store = store if store is not None else MemoryTokenStore()
        self._listeners: List[InvalidationListener] = []

    @property
    def token(self) -> Optional[str]:
        return self.store.get(config.TOKEN_KEY)

    @property
    def patient_id(self) -> Optional[int]:
        value = self.store.get(config.PATIENT_ID_KEY)
        return int(value) if value else None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def update(self, token: str, patient_id: Optional[int] = None) -> None:
        """
        Store a freshly issued token.

        Args:
            token: Opaque bearer token
            patient_id: Patient the token belongs to (kept if None)
        """
        self.store.set(config.TOKEN_KEY, token)
        if patient_id is not None:
            self.store.set(config.PATIENT_ID_KEY, str(patient_id))
        logger.info("session_updated", patient_id=patient_id)

    def clear(self) -> None:
        """Erase token and patient id."""
        self.store.delete(config.TOKEN_KEY)
        self.store.delete(config.PATIENT_ID_KEY)
        logger.info("session_cleared")

    def invalidate(self, reason: str = "unauthorized") -> None:
        """Clear the session after the backend rejected it and notify listeners."""
        self.clear()
        logger.warning("session_invalidated", reason=reason)
        for listener in list(self._listeners):
            listener(reason)

    def add_invalidation_listener(self, listener: InvalidationListener) -> None:
        self._listeners.append(listener)

    def remove_invalidation_listener(self, listener: InvalidationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

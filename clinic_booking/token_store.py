"""Durable key-value storage for the client session.

Two backends: an in-memory dict (tests, one-off runs) and a SQLAlchemy table
that survives restarts, the way a browser keeps localStorage.
"""
from datetime import datetime, UTC
from typing import Dict, Optional

from sqlalchemy import Column, DateTime, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class StoredValue(Base):
    """One persisted key/value pair."""
    __tablename__ = "client_storage"

    key = Column(String(100), primary_key=True, index=True)
    value = Column(String(2000), nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<StoredValue(key={self.key})>"


class TokenStore:
    """Interface shared by the storage backends."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    """Process-local storage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class SqlTokenStore(TokenStore):
    """
    SQLAlchemy-backed storage.

    Pattern: Thin wrapper around a single table, one short transaction per call.
    """

    def __init__(self, database_url: str):
        """
        Initialize store with database connection.

        Args:
            database_url: SQLAlchemy connection string (e.g. sqlite:///client.db)
        """
        self.engine = create_engine(database_url, pool_pre_ping=True)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def get(self, key: str) -> Optional[str]:
        with self.SessionLocal() as db:
            row = db.get(StoredValue, key)
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with self.SessionLocal() as db:
            row = db.get(StoredValue, key)
            if row:
                row.value = value
            else:
                db.add(StoredValue(key=key, value=value))
            db.commit()

    def delete(self, key: str) -> None:
        with self.SessionLocal() as db:
            db.query(StoredValue).filter(StoredValue.key == key).delete()
            db.commit()


def create_token_store(database_url: Optional[str] = None) -> TokenStore:
    """Pick the SQL store when a URL is configured, memory otherwise."""
    if database_url:
        return SqlTokenStore(database_url)
    return MemoryTokenStore()

"""Configuration for the booking client.

Constants for the booking rules live here; deployment settings are read from
the environment (or a local .env file) into ClientSettings.
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

# Booking rules
OTP_LENGTH = 6
PHONE_NUMBER_LENGTH = 10
BOOKING_WINDOW_MONTHS = 1

# Durable client-side storage keys
TOKEN_KEY = "authToken"
PATIENT_ID_KEY = "patientId"

# Mock backend (python mock_api.py)
MOCK_API_BASE_URL = "http://localhost:5000"
MOCK_API_PORT = 5000


class ClientSettings(BaseModel):
    """Deployment settings for the booking client."""
    api_base_url: str = Field(MOCK_API_BASE_URL, min_length=1, description="Backend base URL")
    questionnaire_enabled: bool = Field(False, description="Show the medical questionnaire step")
    questionnaire_id: int = Field(1, description="Questionnaire to attach to bookings")
    request_timeout: float = Field(15.0, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(2, ge=0, le=10, description="Transport retries for GET requests")
    backoff_factor: float = Field(0.5, ge=0, description="Exponential backoff multiplier")
    token_store_url: Optional[str] = Field(
        None,
        description="SQLAlchemy URL for durable token storage (in-memory if unset)"
    )
    log_level: str = Field("INFO", description="Logging level")

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Build settings from BOOKING_* environment variables."""
        return cls(
            api_base_url=os.getenv("BOOKING_API_BASE_URL", MOCK_API_BASE_URL),
            questionnaire_enabled=os.getenv("BOOKING_QUESTIONNAIRE_ENABLED", "0") == "1",
            questionnaire_id=os.getenv("BOOKING_QUESTIONNAIRE_ID", "1"),
            request_timeout=os.getenv("BOOKING_REQUEST_TIMEOUT", "15"),
            max_retries=os.getenv("BOOKING_MAX_RETRIES", "2"),
            backoff_factor=os.getenv("BOOKING_BACKOFF_FACTOR", "0.5"),
            token_store_url=os.getenv("BOOKING_TOKEN_STORE_URL") or None,
            log_level=os.getenv("BOOKING_LOG_LEVEL", "INFO"),
        )

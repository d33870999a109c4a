"""Pydantic models for backend payloads.

Each endpoint decodes into exactly one of these contracts; anything else is a
DecodeError rather than a guess at an alternative shape.
"""
import datetime as dt
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from clinic_booking.errors import DecodeError

# Appointment status codes (owned by the backend, opaque otherwise)
STATUS_UNCONFIRMED = "UNC"
STATUS_CANCELLED = "CNC"

QUESTION_MULTIPLE_CHOICE = "multiple_choice"


class Doctor(BaseModel):
    """Doctor as listed by GET /doctors/."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    first_name: str
    last_name: str
    about: Optional[str] = None
    qualifications: Optional[str] = None
    pricing: Optional[str] = None
    medical_aid: Optional[List[str]] = Field(None, alias="medicalAid")
    image: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def initials(self) -> str:
        return f"{self.first_name[:1]}{self.last_name[:1]}"


class Patient(BaseModel):
    """Patient record, identified by contact number."""
    model_config = ConfigDict(extra="ignore")

    id: int
    first_name: Optional[str] = ""
    last_name: Optional[str] = ""
    contact_number: str


class PatientSnapshot(BaseModel):
    """Name and phone copied onto an appointment at booking time."""
    model_config = ConfigDict(extra="ignore")

    first_name: str = ""
    last_name: str = ""
    contact_number: str = ""


class Question(BaseModel):
    model_config = ConfigDict(extra="allow")

    question_text: str
    question_type: str
    choices: Optional[str] = None
    answer: Optional[str] = None

    @property
    def is_multiple_choice(self) -> bool:
        return self.question_type == QUESTION_MULTIPLE_CHOICE and bool(self.choices)

    @property
    def choice_list(self) -> List[str]:
        """Comma-separated choices, trimmed."""
        if not self.choices:
            return []
        return [choice.strip() for choice in self.choices.split(",")]


class Questionnaire(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    name: str
    questions: List[Question] = Field(default_factory=list)


class Appointment(BaseModel):
    """Appointment as returned by the patient appointment lists."""
    model_config = ConfigDict(extra="ignore")

    id: int
    doctor: Optional[Union[int, Dict[str, Any]]] = None
    doctor_id: Optional[int] = None
    date: dt.date
    time: str
    patient: Optional[PatientSnapshot] = None
    status: str = STATUS_UNCONFIRMED
    questionnaire_data: Optional[Dict[str, Any]] = None

    @property
    def starts_at(self) -> dt.datetime:
        """Combined local date and time of the slot."""
        return dt.datetime.combine(self.date, dt.time.fromisoformat(self.time))

    @property
    def doctor_name(self) -> Optional[str]:
        if isinstance(self.doctor, dict):
            first = self.doctor.get("first_name", "")
            last = self.doctor.get("last_name", "")
            return f"{first} {last}".strip() or None
        return None

    @property
    def is_cancelled(self) -> bool:
        return self.status == STATUS_CANCELLED


class AuthResult(BaseModel):
    """Response of OTP login and token authentication."""
    model_config = ConfigDict(extra="ignore")

    token: Optional[str] = None
    patient: Patient


class AppointmentRequest(BaseModel):
    """Appointment staged by the booking form, replayed after OTP login."""
    doctor_id: int
    date: dt.date
    time: str
    patient: PatientSnapshot
    questionnaire: Optional[Questionnaire] = None

    def to_payload(self) -> Dict[str, Any]:
        """Body for POST /appointments/."""
        return {
            "date": self.date.isoformat(),
            "time": self.time,
            "doctor_id": self.doctor_id,
            "patient": {
                "first_name": self.patient.first_name or "",
                "last_name": self.patient.last_name or "",
                "contact_number": self.patient.contact_number or "",
            },
            "booked_by_patient": 1,
            "questionnaire_data": (
                self.questionnaire.model_dump(mode="json")
                if self.questionnaire else None
            ),
        }


class DoctorAvailability(BaseModel):
    model_config = ConfigDict(extra="ignore")

    available_appointments: Dict[str, List[str]] = Field(default_factory=dict)


_AVAILABILITY_ADAPTER = TypeAdapter(Dict[str, DoctorAvailability])


def decode(model: Any, data: Any, endpoint: str) -> Any:
    """
    Validate raw JSON against a model or type.

    Args:
        model: Pydantic model class or typing construct (e.g. List[Doctor])
        data: Decoded JSON body
        endpoint: Endpoint name for the error message

    Returns:
        Validated instance

    Raises:
        DecodeError: If data does not match the contract
    """
    try:
        if isinstance(model, type) and issubclass(model, BaseModel):
            return model.model_validate(data)
        return TypeAdapter(model).validate_python(data)
    except ValidationError as e:
        raise DecodeError(f"Unexpected response from {endpoint}: {e}") from e


def decode_availability(data: Any, doctor_id: int) -> Dict[str, List[str]]:
    """Extract the date -> times mapping for one doctor."""
    try:
        by_doctor = _AVAILABILITY_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise DecodeError(f"Unexpected response from available_appointments: {e}") from e

    entry = by_doctor.get(str(doctor_id))
    return dict(entry.available_appointments) if entry else {}

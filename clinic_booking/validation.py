"""Form validation. Nothing here touches the network."""
import calendar
import datetime as dt
import re
from dataclasses import dataclass
from typing import Optional

from clinic_booking import config
from clinic_booking.errors import InputValidationError
from clinic_booking.models import Doctor

PHONE_PATTERN = re.compile(rf"[0-9]{{{config.PHONE_NUMBER_LENGTH}}}")


def is_valid_phone_number(phone: str) -> bool:
    """Exactly 10 digits, no formatting."""
    return bool(phone) and bool(PHONE_PATTERN.fullmatch(phone))


def add_months(day: dt.date, months: int) -> dt.date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.date(year, month, min(day.day, last_day))


def booking_window(today: dt.date) -> tuple[dt.date, dt.date]:
    """First and last bookable day."""
    return today, add_months(today, config.BOOKING_WINDOW_MONTHS)


@dataclass
class BookingForm:
    """Fields of the booking form as the patient fills them in."""
    doctor: Optional[Doctor] = None
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    date: Optional[dt.date] = None
    time: str = ""
    terms_accepted: bool = False


def validate_booking_form(form: BookingForm, today: Optional[dt.date] = None) -> None:
    """
    Check the form before anything is sent.

    Args:
        form: Booking form
        today: Reference day for the booking window (defaults to today)

    Raises:
        InputValidationError: With the message to show the user
    """
    if form.doctor is None:
        raise InputValidationError("Please select a doctor.")

    required = [form.first_name, form.last_name, form.phone, form.date, form.time]
    if any(not value or (isinstance(value, str) and not value.strip()) for value in required):
        raise InputValidationError("Please fill in all required fields.")

    if not form.terms_accepted:
        raise InputValidationError("Please accept the terms and conditions.")

    first_day, last_day = booking_window(today or dt.date.today())
    if not first_day <= form.date <= last_day:
        raise InputValidationError(
            f"Please pick a date between {first_day.isoformat()} and {last_day.isoformat()}."
        )


def validate_login_phone(phone: str) -> None:
    """
    Raises:
        InputValidationError: If the phone is not a 10-digit number
    """
    if not is_valid_phone_number(phone):
        raise InputValidationError(
            f"Please enter a valid {config.PHONE_NUMBER_LENGTH}-digit phone number."
        )

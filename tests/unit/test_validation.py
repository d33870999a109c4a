"""Tests for form validation."""
import datetime as dt

import pytest

from clinic_booking.errors import InputValidationError
from clinic_booking.validation import (
    BookingForm,
    add_months,
    booking_window,
    is_valid_phone_number,
    validate_booking_form,
    validate_login_phone,
)

TODAY = dt.date(2025, 1, 12)


@pytest.fixture
def form(doctor):
    return BookingForm(
        doctor=doctor,
        first_name="Thandi",
        last_name="Nkosi",
        phone="0821234567",
        date=dt.date(2025, 1, 20),
        time="09:30",
        terms_accepted=True,
    )


def test_valid_form(form):
    validate_booking_form(form, today=TODAY)


def test_doctor_required(form):
    form.doctor = None

    with pytest.raises(InputValidationError, match="Please select a doctor."):
        validate_booking_form(form, today=TODAY)


@pytest.mark.parametrize("field,value", [
    ("first_name", ""),
    ("last_name", "   "),
    ("phone", ""),
    ("date", None),
    ("time", ""),
])
def test_required_fields(form, field, value):
    setattr(form, field, value)

    with pytest.raises(InputValidationError, match="Please fill in all required fields."):
        validate_booking_form(form, today=TODAY)


def test_terms_required(form):
    form.terms_accepted = False

    with pytest.raises(InputValidationError, match="terms and conditions"):
        validate_booking_form(form, today=TODAY)


@pytest.mark.parametrize("day,ok", [
    (dt.date(2025, 1, 11), False),
    (dt.date(2025, 1, 12), True),
    (dt.date(2025, 2, 12), True),
    (dt.date(2025, 2, 13), False),
])
def test_booking_window(form, day, ok):
    form.date = day

    if ok:
        validate_booking_form(form, today=TODAY)
    else:
        with pytest.raises(InputValidationError, match="Please pick a date"):
            validate_booking_form(form, today=TODAY)


def test_booking_phone_format_not_checked(form):
    form.phone = "+27 82 123"

    validate_booking_form(form, today=TODAY)


def test_add_months_clamps():
    assert add_months(dt.date(2025, 1, 31), 1) == dt.date(2025, 2, 28)
    assert add_months(dt.date(2024, 12, 15), 1) == dt.date(2025, 1, 15)


def test_window_bounds():
    assert booking_window(TODAY) == (TODAY, dt.date(2025, 2, 12))


@pytest.mark.parametrize("phone,valid", [
    ("0821234567", True),
    ("082123456", False),
    ("08212345678", False),
    ("082 123 4567", False),
    ("", False),
])
def test_phone_numbers(phone, valid):
    assert is_valid_phone_number(phone) is valid


def test_login_phone_message():
    with pytest.raises(InputValidationError, match="valid 10-digit phone number"):
        validate_login_phone("123")

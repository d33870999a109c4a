"""Tests for the per-digit OTP input."""
import pytest

from clinic_booking.otp import OtpInput, is_valid_otp


@pytest.fixture
def otp():
    return OtpInput()


def test_digit_advances_focus(otp):
    otp.enter(0, "4")

    assert otp.digits[0] == "4"
    assert otp.focus == 1


def test_last_box_keeps_focus(otp):
    otp.focus = 5
    otp.enter(5, "9")

    assert otp.digits[5] == "9"
    assert otp.focus == 5


def test_non_digit_ignored(otp):
    otp.enter(0, "a")
    otp.enter(0, "4x")

    assert otp.digits == [""] * 6
    assert otp.focus == 0


def test_only_last_character_kept(otp):
    otp.enter(2, "78")

    assert otp.digits[2] == "8"
    assert otp.focus == 3


def test_backspace_clears_filled_box(otp):
    otp.enter(0, "1")
    otp.enter(1, "2")

    otp.backspace(1)

    assert otp.digits[:2] == ["1", ""]
    assert otp.focus == 2


def test_backspace_on_empty_box_moves_back(otp):
    otp.backspace(3)

    assert otp.focus == 2


def test_backspace_on_first_empty_box(otp):
    otp.backspace(0)

    assert otp.focus == 0


def test_type_code_and_clear(otp):
    otp.type_code("123456")

    assert otp.value == "123456"
    assert otp.is_complete

    otp.clear()

    assert otp.value == ""
    assert otp.focus == 0
    assert not otp.is_complete


@pytest.mark.parametrize("code,valid", [
    ("123456", True),
    ("12345", False),
    ("1234567", False),
    ("12a456", False),
    ("", False),
])
def test_is_valid_otp(code, valid):
    assert is_valid_otp(code) is valid

"""One-input-per-digit OTP entry."""
import re
from typing import List

from clinic_booking import config

DIGITS_ONLY = re.compile(r"[0-9]*")


class OtpInput:
    """
    Fixed-length numeric code split into one box per digit.

    Tracks which box has focus: entering a digit advances focus, backspace
    on an empty box moves it back. Non-digit input is ignored.
    """

    def __init__(self, length: int = config.OTP_LENGTH):
        self.length = length
        self.digits: List[str] = [""] * length
        self.focus = 0

    @property
    def value(self) -> str:
        return "".join(self.digits)

    @property
    def is_complete(self) -> bool:
        return all(self.digits)

    def enter(self, index: int, text: str) -> None:
        """
        Apply an edit to box ``index``.

        Args:
            index: Box position (0-based)
            text: New box content; only its last character is kept
        """
        if not DIGITS_ONLY.fullmatch(text):
            return
        self.digits[index] = text[-1:]
        if text and index < self.length - 1:
            self.focus = index + 1

    def backspace(self, index: int) -> None:
        """Clear box ``index``, or move focus back if it is already empty."""
        if self.digits[index]:
            self.digits[index] = ""
        elif index > 0:
            self.focus = index - 1

    def type_code(self, code: str) -> None:
        """Enter characters one at a time starting at the focused box."""
        for char in code:
            self.enter(self.focus, char)

    def clear(self) -> None:
        self.digits = [""] * self.length
        self.focus = 0


def is_valid_otp(code: str, length: int = config.OTP_LENGTH) -> bool:
    """Exactly ``length`` ASCII digits."""
    return len(code) == length and bool(DIGITS_ONLY.fullmatch(code))

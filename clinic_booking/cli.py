#!/usr/bin/env python3
"""Interactive terminal client for booking and managing appointments.

Usage:
    clinic-booking book      # pick a doctor and book a slot
    clinic-booking manage    # log in by OTP, list and cancel appointments

Settings come from BOOKING_* environment variables (see config.py). Point
BOOKING_API_BASE_URL at `python mock_api.py` for a local run.
"""
import datetime as dt
import sys
from typing import Callable, List, Optional, Tuple

from clinic_booking.api import ApiClient
from clinic_booking.booking import BookingController
from clinic_booking.config import ClientSettings
from clinic_booking.controller import SessionController
from clinic_booking.logging_config import setup_structured_logging
from clinic_booking.management import ManagementController
from clinic_booking.models import Appointment, Doctor
from clinic_booking.notifications import Notifier
from clinic_booking.questionnaire import CONTROL_SELECT
from clinic_booking.session import AuthSession
from clinic_booking.token_store import create_token_store


# ANSI color codes
class Colors:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


LEVEL_COLORS = {
    "success": Colors.GREEN,
    "error": Colors.RED,
    "info": Colors.BLUE,
}

Prompt = Callable[[str], str]


def print_colored(text: str, color: str = Colors.RESET):
    """Print colored text."""
    print(f"{color}{text}{Colors.RESET}")


def flush_notifications(notifier: Notifier):
    for note in notifier.drain():
        print_colored(f"[{note.level.upper()}] {note.message}", LEVEL_COLORS.get(note.level, Colors.RESET))


def build_clients(settings: ClientSettings) -> Tuple[ApiClient, SessionController]:
    """Wire storage, session, API client and session controller."""
    session = AuthSession(create_token_store(settings.token_store_url))
    session.add_invalidation_listener(
        lambda reason: print_colored("Your session has expired. Please log in again.", Colors.YELLOW)
    )
    api = ApiClient(
        settings.api_base_url,
        session,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        backoff_factor=settings.backoff_factor,
    )
    return api, SessionController(api, session, Notifier())


def format_doctor(doctor: Doctor) -> str:
    lines = [f"{Colors.BOLD}{doctor.full_name}{Colors.RESET}"]
    if doctor.about:
        lines.append(f"  {doctor.about}")
    if doctor.qualifications:
        lines.append(f"  Qualifications: {doctor.qualifications}")
    if doctor.medical_aid:
        lines.append(f"  Accepted Medical Aid: {', '.join(doctor.medical_aid)}")
    if doctor.pricing:
        lines.append(f"  {doctor.pricing}")
    return "\n".join(lines)


def format_appointment(appointment: Appointment) -> str:
    doctor = appointment.doctor_name or f"doctor #{appointment.doctor_id or appointment.doctor}"
    return f"#{appointment.id}  {appointment.date.isoformat()} {appointment.time}  {doctor}  [{appointment.status}]"


def choose(prompt: Prompt, label: str, options: List[str]) -> Optional[int]:
    """Numbered menu; returns the chosen index or None."""
    for number, option in enumerate(options, start=1):
        print(f"  {number}. {option}")
    answer = prompt(f"{label} (number, blank to skip): ").strip()
    if not answer.isdigit() or not 1 <= int(answer) <= len(options):
        return None
    return int(answer) - 1


def ask_date(prompt: Prompt) -> Optional[dt.date]:
    answer = prompt("Appointment date (YYYY-MM-DD): ").strip()
    try:
        return dt.date.fromisoformat(answer)
    except ValueError:
        print_colored("Not a valid date.", Colors.RED)
        return None


def run_otp_dialog(prompt: Prompt, controller, notifier: Notifier) -> None:
    """Ask for codes until verified or the user gives up."""
    while controller.is_challenge_open:
        code = prompt("Enter the 6-digit OTP ('resend' for a new code, blank to cancel): ").strip()
        if not code:
            controller.close_challenge()
        elif code == "resend":
            controller.request_code(controller.phone)
        else:
            controller.otp.type_code(code)
            controller.submit_otp()
        flush_notifications(notifier)


def run_booking(settings: ClientSettings, prompt: Prompt = input) -> int:
    api, sessions = build_clients(settings)
    notifier = sessions.notifier
    booking = BookingController(api, sessions, settings)

    booking.load()
    flush_notifications(notifier)
    if not booking.doctors:
        print_colored("No doctors available.", Colors.YELLOW)
        return 1

    index = choose(prompt, "Select a doctor", [d.full_name for d in booking.doctors])
    if index is None:
        return 1
    doctor = booking.select_doctor(booking.doctors[index].id)
    print(format_doctor(doctor))

    while not booking.available_times:
        day = ask_date(prompt)
        if day is None:
            return 1
        booking.select_date(day)
        flush_notifications(notifier)
        if not booking.available_times:
            print_colored("No available times on that day.", Colors.YELLOW)

    slot = choose(prompt, "Select time", booking.available_times)
    if slot is None:
        return 1
    booking.select_time(booking.available_times[slot])

    booking.form.first_name = prompt("First name: ").strip()
    booking.form.last_name = prompt("Last name: ").strip()
    booking.form.phone = prompt("Cellphone number: ").strip()

    if booking.questionnaire is not None:
        print_colored(booking.questionnaire.name, Colors.BOLD)
        for control in booking.questionnaire.controls():
            print(control.label)
            if control.kind == CONTROL_SELECT:
                picked = choose(prompt, "Answer", control.options)
                answer = control.options[picked] if picked is not None else None
            else:
                answer = prompt("Answer: ").strip() or None
            booking.answer_question(control.index, answer)

    terms = prompt("I agree to the terms and conditions (y/n): ").strip().lower()
    booking.accept_terms(terms == "y")

    booking.submit()
    flush_notifications(notifier)
    run_otp_dialog(prompt, booking, notifier)

    if booking.is_success_open:
        print_colored(
            "Your provisional appointment has been created. The doctor will review and "
            "confirm it shortly; please await confirmation BEFORE attending.",
            Colors.GREEN
        )
        booking.close_success()
        return 0
    return 1


def print_appointments(management: ManagementController):
    sections = [
        ("Upcoming", management.upcoming()),
        ("Previous", management.previous()),
        ("Cancelled", management.cancelled),
    ]
    for title, appointments in sections:
        print_colored(f"\n{title}", Colors.BOLD)
        if not appointments:
            print("  (none)")
        for appointment in appointments:
            print(f"  {format_appointment(appointment)}")


def run_management(settings: ClientSettings, prompt: Prompt = input) -> int:
    api, sessions = build_clients(settings)
    notifier = sessions.notifier
    management = ManagementController(api, sessions)

    management.start()
    flush_notifications(notifier)

    while not management.is_unlocked:
        phone = prompt("Phone number (blank to quit): ").strip()
        if not phone:
            return 1
        management.request_code(phone)
        flush_notifications(notifier)
        run_otp_dialog(prompt, management, notifier)

    while True:
        print_appointments(management)
        command = prompt("\n[c]ancel <id>, [r]efresh, [l]ogout, [q]uit: ").strip().split()
        if not command or command[0] == "q":
            return 0
        if command[0] == "r":
            management.refresh()
        elif command[0] == "l":
            management.logout()
            flush_notifications(notifier)
            return 0
        elif command[0] == "c" and len(command) > 1 and command[1].isdigit():
            appointment = management.request_cancellation(int(command[1]))
            if appointment is None:
                print_colored("No such upcoming appointment.", Colors.RED)
                continue
            confirm = prompt(f"Cancel {format_appointment(appointment)}? (y/n): ").strip().lower()
            if confirm == "y":
                management.confirm_cancellation()
            else:
                management.dismiss_cancellation()
        flush_notifications(notifier)
        if not management.is_unlocked:
            run_otp_dialog(prompt, management, notifier)
            if not management.is_unlocked:
                return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Run the terminal client."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] not in ("book", "manage"):
        print("Usage: clinic-booking book | manage")
        return 2

    settings = ClientSettings.from_env()
    setup_structured_logging(settings.log_level)

    try:
        if argv[0] == "book":
            return run_booking(settings)
        return run_management(settings)
    except (KeyboardInterrupt, EOFError):
        print()
        return 130


if __name__ == "__main__":
    sys.exit(main())

"""Categorise a patient's appointments into upcoming, previous and cancelled.

Evaluated against the wall clock at display time, not at fetch time.
"""
import datetime as dt
from typing import Iterable, List, Optional, Tuple

from clinic_booking.models import Appointment, STATUS_CANCELLED


def partition_appointments(
    appointments: Iterable[Appointment],
    now: Optional[dt.datetime] = None
) -> Tuple[List[Appointment], List[Appointment]]:
    """
    Split appointments around ``now``.

    An appointment starting exactly at ``now`` is upcoming.

    Args:
        appointments: Appointments in any order
        now: Reference time (local, naive); defaults to datetime.now()

    Returns:
        (upcoming soonest first, previous most recent first)
    """
    now = now or dt.datetime.now()
    appointments = list(appointments)
    upcoming = [appt for appt in appointments if appt.starts_at >= now]
    previous = [appt for appt in appointments if appt.starts_at < now]
    upcoming.sort(key=lambda appt: appt.starts_at)
    previous.sort(key=lambda appt: appt.starts_at, reverse=True)
    return upcoming, previous


def upcoming_appointments(
    appointments: Iterable[Appointment],
    now: Optional[dt.datetime] = None
) -> List[Appointment]:
    return partition_appointments(appointments, now)[0]


def previous_appointments(
    appointments: Iterable[Appointment],
    now: Optional[dt.datetime] = None
) -> List[Appointment]:
    return partition_appointments(appointments, now)[1]


def as_cancelled(appointment: Appointment) -> Appointment:
    """Copy tagged with the cancelled status, whatever the backend said."""
    return appointment.model_copy(update={"status": STATUS_CANCELLED})

"""Working-hours evaluation and slot generation.

Everything here is pure: callers pass in the provider's declared hours, the
instant being asked about and the timezone the hours are expressed in.
Instants may be in any timezone; they are converted to the provider's local
time before the weekday and the clock time are read.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Mapping, Optional

from servicehub.common.models.providers import DayHours
from servicehub.common.utils.constants import SLOT_STEP, WEEKDAYS
from servicehub.common.utils.custom_exceptions import ValidationError


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime

    def as_dict(self) -> dict:
        return {
            "start": self.start.strftime("%H:%M"),
            "end": self.end.strftime("%H:%M"),
            "starts_at": self.start.isoformat(),
        }


def parse_clock(value: str) -> time:
    try:
        hours, minutes = (int(part) for part in value.split(":"))
        return time(hours, minutes)
    except (AttributeError, TypeError, ValueError):
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")


def day_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def hours_for_day(
    working_hours: Mapping[str, Optional[DayHours]], day: date
) -> Optional[DayHours]:
    """Returns the declared hours for ``day`` only when the day is marked available."""
    hours = working_hours.get(day_name(day))
    if hours is None or not hours.available:
        return None
    return hours


def window_on(hours: DayHours, day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    start = datetime.combine(day, parse_clock(hours.start), tzinfo=tz)
    end = datetime.combine(day, parse_clock(hours.end), tzinfo=tz)
    if end <= start:
        raise ValidationError(
            f"Working hours end {hours.end} must be after start {hours.start}"
        )
    return start, end


def working_window(
    working_hours: Mapping[str, Optional[DayHours]], instant: datetime, tz: tzinfo
) -> Optional[tuple[datetime, datetime]]:
    local = instant.astimezone(tz)
    hours = hours_for_day(working_hours, local.date())
    if hours is None:
        return None
    return window_on(hours, local.date(), tz)


def is_within_working_hours(
    working_hours: Mapping[str, Optional[DayHours]], instant: datetime, tz: tzinfo
) -> bool:
    window = working_window(working_hours, instant, tz)
    if window is None:
        return False
    start, end = window
    return start <= instant <= end


def overlaps(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    return not (a_end <= b_start or a_start >= b_end)


def generate_slots(
    window_start: datetime,
    window_end: datetime,
    duration: timedelta,
    busy_starts: Iterable[datetime],
    step: timedelta = SLOT_STEP,
) -> list[Slot]:
    """Bookable slots inside a window.

    Existing commitments are assumed to last ``duration`` from their start.
    """
    if duration <= timedelta(0):
        raise ValidationError("Slot duration must be positive")

    busy = [(start, start + duration) for start in busy_starts]
    slots = []
    current = window_start
    while current + duration <= window_end:
        slot_end = current + duration
        if not any(overlaps(current, slot_end, b_start, b_end) for b_start, b_end in busy):
            slots.append(Slot(start=current, end=slot_end))
        current += step
    return slots

from dataclasses import asdict
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from servicehub.common.models.providers import DayHours
from servicehub.common.utils.constants import WEEKDAYS

CLOCK_PATTERN = r"^\d{1,2}:\d{2}$"


class DayHoursIn(BaseModel):
    start: str = Field(pattern=CLOCK_PATTERN)
    end: str = Field(pattern=CLOCK_PATTERN)
    available: bool = True


class WorkingHoursRequest(BaseModel):
    working_hours: dict[str, Optional[DayHoursIn]] = Field(min_length=1)

    @field_validator("working_hours")
    @classmethod
    def known_days(cls, v: dict):
        normalised = {day.lower(): hours for day, hours in v.items()}
        unknown = sorted(set(normalised) - set(WEEKDAYS))
        if unknown:
            raise ValueError(f"Unknown days: {', '.join(unknown)}")
        return normalised

    def to_domain(self) -> dict[str, Optional[DayHours]]:
        return {
            day: None if hours is None else DayHours(hours.start, hours.end, hours.available)
            for day, hours in self.working_hours.items()
        }


def working_hours_view(working_hours: dict[str, Optional[DayHours]]) -> dict:
    return {
        day: None if hours is None else asdict(hours)
        for day, hours in working_hours.items()
    }

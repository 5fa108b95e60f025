import logging
from datetime import tzinfo
from typing import Mapping, Optional

from servicehub.common.models.providers import DayHours
from servicehub.common.models.users import Caller, UserRole
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.services import availability
from servicehub.common.utils.clock import SystemClock
from servicehub.common.utils.constants import WEEKDAYS
from servicehub.common.utils.custom_exceptions import (
    NotFoundException,
    SchedulingConflict,
    Unauthorized,
    ValidationError,
)
from servicehub.common.utils.datetime_normaliser import local_timezone

logger = logging.getLogger(__name__)


class ProviderService:
    def __init__(self, provider_repo: ProviderRepository, clock=None, tz: Optional[tzinfo] = None):
        self.provider_repo = provider_repo
        self.clock = clock or SystemClock()
        self.tz = tz or local_timezone()

    def toggle_availability(self, caller: Caller) -> dict:
        if caller.role != UserRole.PROVIDER:
            raise Unauthorized("Only providers can change their availability")

        provider = self.provider_repo.get_by_id(caller.user_id)
        if provider is None:
            raise NotFoundException("provider", caller.user_id)

        now = self.clock.now()
        local = now.astimezone(self.tz)
        day = availability.day_name(local.date())
        hours = availability.hours_for_day(provider.working_hours, local.date())

        if hours is None and not provider.is_available:
            raise SchedulingConflict(f"You are not scheduled to work on {day}")

        within_hours = hours is not None and availability.is_within_working_hours(
            provider.working_hours, now, self.tz
        )
        if not within_hours and provider.is_available:
            self.provider_repo.set_availability(provider.provider_id, False)
            logger.info(f"Provider {provider.provider_id} auto-disabled outside working hours")
            return {
                "is_available": False,
                "auto_disabled": True,
                "message": "You are outside your working hours. Availability has been turned off.",
            }

        is_available = not provider.is_available
        self.provider_repo.set_availability(provider.provider_id, is_available)
        logger.info(f"Provider {provider.provider_id} availability set to {is_available}")
        return {
            "is_available": is_available,
            "auto_disabled": False,
            "message": f"Availability turned {'on' if is_available else 'off'}",
        }

    def update_working_hours(
        self, caller: Caller, working_hours: Mapping[str, Optional[DayHours]]
    ) -> dict[str, Optional[DayHours]]:
        if caller.role != UserRole.PROVIDER:
            raise Unauthorized("Only providers can change their working hours")
        if not working_hours:
            raise ValidationError("Please provide valid working hours data")

        provider = self.provider_repo.get_by_id(caller.user_id)
        if provider is None:
            raise NotFoundException("provider", caller.user_id)

        schedule = {}
        for day, hours in working_hours.items():
            day = day.lower()
            if day not in WEEKDAYS:
                raise ValidationError(f"'{day}' is not a day of the week")
            if hours is not None:
                start = availability.parse_clock(hours.start)
                end = availability.parse_clock(hours.end)
                if end <= start:
                    raise ValidationError(
                        f"Working hours on {day} must end after they start"
                    )
            schedule[day] = hours

        self.provider_repo.set_working_hours(provider.provider_id, schedule)
        logger.info(f"Provider {provider.provider_id} updated working hours")
        return schedule

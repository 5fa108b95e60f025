import logging
from datetime import tzinfo
from typing import List, Optional

from servicehub.common.models.providers import Provider
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.services import availability
from servicehub.common.utils.clock import SystemClock
from servicehub.common.utils.custom_exceptions import NotFoundException, ValidationError
from servicehub.common.utils.datetime_normaliser import local_timezone

logger = logging.getLogger(__name__)


class AvailabilityScheduler:
    """Keeps each provider's ``is_available`` flag in line with their working hours.

    Both jobs are idempotent and only ever write the availability flag.
    """

    def __init__(self, provider_repo: ProviderRepository, clock=None, tz: Optional[tzinfo] = None):
        self.provider_repo = provider_repo
        self.clock = clock or SystemClock()
        self.tz = tz or local_timezone()

    def should_be_available(self, provider: Provider) -> bool:
        try:
            return availability.is_within_working_hours(
                provider.working_hours, self.clock.now(), self.tz
            )
        except ValidationError as err:
            logger.error(f"Provider {provider.provider_id} has invalid working hours: {err}")
            return False

    def reconcile(self) -> List[str]:
        """Hourly pass: flips providers whose flag disagrees with their hours right now."""
        changed = []
        for provider in self.provider_repo.list_providers():
            expected = self.should_be_available(provider)
            if provider.is_available == expected:
                continue
            if not self._set_availability(provider.provider_id, expected):
                continue
            changed.append(provider.provider_id)

        logger.info(f"Availability reconciled, {len(changed)} provider(s) updated")
        return changed

    def reset_for_new_day(self) -> List[str]:
        """Midnight pass: providers who do not work today are marked unavailable."""
        today = self.clock.now().astimezone(self.tz).date()
        changed = []
        for provider in self.provider_repo.list_providers():
            if not provider.is_available:
                continue
            if availability.hours_for_day(provider.working_hours, today) is not None:
                continue
            if not self._set_availability(provider.provider_id, False):
                continue
            changed.append(provider.provider_id)

        logger.info(f"Daily availability reset, {len(changed)} provider(s) disabled")
        return changed

    def _set_availability(self, provider_id: str, is_available: bool) -> bool:
        try:
            self.provider_repo.set_availability(provider_id, is_available)
        except NotFoundException:
            logger.warning(f"Provider {provider_id} disappeared before its availability update")
            return False
        return True

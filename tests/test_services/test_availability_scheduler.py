import unittest
from datetime import timedelta, timezone
from unittest.mock import MagicMock

from factories import IST, MONDAY, SUNDAY, local, make_provider

from servicehub.common.models.providers import DayHours
from servicehub.common.services.availability_scheduler import AvailabilityScheduler
from servicehub.common.utils.clock import FixedClock
from servicehub.common.utils.custom_exceptions import NotFoundException


class FakeProviderRepo:
    def __init__(self, *providers):
        self.providers = {p.provider_id: p for p in providers}
        self.writes = []

    def list_providers(self):
        return list(self.providers.values())

    def set_availability(self, provider_id, is_available):
        self.providers[provider_id].is_available = is_available
        self.writes.append((provider_id, is_available))


class TestAvailabilityScheduler(unittest.TestCase):

    def setUp(self):
        self.clock = FixedClock(local(MONDAY, 8).astimezone(timezone.utc))
        self.repo = FakeProviderRepo(
            make_provider(provider_id="early", is_available=False),
            make_provider(
                provider_id="evening",
                is_available=True,
                working_hours={"monday": DayHours("18:00", "22:00", True)},
            ),
        )
        self.scheduler = AvailabilityScheduler(self.repo, clock=self.clock, tz=IST)

    def test_hourly_reconcile_over_a_day(self):
        # 08:00: nobody is inside their hours
        self.assertEqual(["evening"], self.scheduler.reconcile())
        self.assertFalse(self.repo.providers["evening"].is_available)

        self.clock.advance(timedelta(hours=1))
        self.assertEqual(["early"], self.scheduler.reconcile())
        self.assertTrue(self.repo.providers["early"].is_available)

        self.clock.advance(timedelta(hours=8))
        self.assertEqual([], self.scheduler.reconcile())

        self.clock.advance(timedelta(hours=1))
        self.assertEqual(
            {"early", "evening"}, set(self.scheduler.reconcile())
        )
        self.assertFalse(self.repo.providers["early"].is_available)
        self.assertTrue(self.repo.providers["evening"].is_available)

    def test_reconcile_is_idempotent(self):
        self.scheduler.reconcile()
        writes = len(self.repo.writes)

        self.assertEqual([], self.scheduler.reconcile())
        self.assertEqual(writes, len(self.repo.writes))

    def test_invalid_hours_count_as_unavailable(self):
        repo = FakeProviderRepo(
            make_provider(
                provider_id="broken",
                is_available=True,
                working_hours={"monday": DayHours("17:00", "09:00", True)},
            )
        )
        self.clock.current = local(MONDAY, 10).astimezone(timezone.utc)

        changed = AvailabilityScheduler(repo, clock=self.clock, tz=IST).reconcile()

        self.assertEqual(["broken"], changed)

    def test_daily_reset_disables_day_off(self):
        self.clock.current = local(SUNDAY, 0).astimezone(timezone.utc)
        repo = FakeProviderRepo(
            make_provider(provider_id="resting", is_available=True),
            make_provider(provider_id="already-off", is_available=False),
            make_provider(
                provider_id="weekend",
                is_available=True,
                working_hours={"sunday": DayHours("10:00", "14:00", True)},
            ),
        )
        scheduler = AvailabilityScheduler(repo, clock=self.clock, tz=IST)

        self.assertEqual(["resting"], scheduler.reset_for_new_day())
        self.assertEqual([("resting", False)], repo.writes)
        self.assertEqual([], scheduler.reset_for_new_day())

    def test_daily_reset_leaves_working_days_alone(self):
        self.clock.current = local(MONDAY, 0).astimezone(timezone.utc)
        repo = FakeProviderRepo(make_provider(is_available=True))

        self.assertEqual([], AvailabilityScheduler(repo, clock=self.clock, tz=IST).reset_for_new_day())

    def test_uses_repository_only_for_flags(self):
        repo = MagicMock()
        repo.list_providers.return_value = [make_provider(provider_id="p", is_available=True)]

        AvailabilityScheduler(repo, clock=self.clock, tz=IST).reconcile()

        repo.set_availability.assert_called_once_with("p", False)

    def test_deleted_provider_does_not_stop_the_pass(self):
        repo = MagicMock()
        repo.list_providers.return_value = [
            make_provider(provider_id="gone", is_available=True),
            make_provider(provider_id="kept", is_available=True),
        ]

        def set_availability(provider_id, is_available):
            if provider_id == "gone":
                raise NotFoundException("provider", provider_id)

        repo.set_availability.side_effect = set_availability
        scheduler = AvailabilityScheduler(repo, clock=self.clock, tz=IST)

        self.assertEqual(["kept"], scheduler.reconcile())

        self.clock.current = local(SUNDAY, 0).astimezone(timezone.utc)
        self.assertEqual(["kept"], scheduler.reset_for_new_day())
        self.assertEqual(4, repo.set_availability.call_count)


if __name__ == "__main__":
    unittest.main()

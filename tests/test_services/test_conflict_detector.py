import unittest
from datetime import timedelta
from unittest.mock import MagicMock

from factories import InMemoryBookingRepo, MONDAY, local, make_booking

from servicehub.common.models.bookings import ACTIVE_STATUSES, BookingStatus
from servicehub.common.services.conflict_detector import ConflictDetector
from servicehub.common.utils.custom_exceptions import SchedulingConflict


class TestConflictDetector(unittest.TestCase):

    def setUp(self):
        self.existing = make_booking(
            booking_id="b-10", scheduled_at=local(MONDAY, 10), status=BookingStatus.ACCEPTED
        )
        self.repo = InMemoryBookingRepo(self.existing)
        self.detector = ConflictDetector(self.repo)

    def test_conflict_inside_buffer(self):
        conflict = self.detector.find_conflict("prov-1", local(MONDAY, 11))

        self.assertEqual("b-10", conflict.booking_id)

    def test_buffer_edges_are_inclusive(self):
        self.assertIsNotNone(self.detector.find_conflict("prov-1", local(MONDAY, 12)))
        self.assertIsNotNone(self.detector.find_conflict("prov-1", local(MONDAY, 8)))
        self.assertIsNone(self.detector.find_conflict("prov-1", local(MONDAY, 12, 1)))

    def test_pending_bookings_do_not_block(self):
        repo = InMemoryBookingRepo(make_booking(scheduled_at=local(MONDAY, 10)))

        self.assertIsNone(ConflictDetector(repo).find_conflict("prov-1", local(MONDAY, 10)))

    def test_other_providers_do_not_block(self):
        self.assertIsNone(self.detector.find_conflict("prov-2", local(MONDAY, 10)))

    def test_excluded_booking_is_ignored(self):
        self.assertIsNone(
            self.detector.find_conflict("prov-1", local(MONDAY, 11), exclude_booking_id="b-10")
        )

    def test_custom_buffer(self):
        self.assertIsNone(
            self.detector.find_conflict("prov-1", local(MONDAY, 11), buffer=timedelta(minutes=30))
        )

    def test_ensure_no_conflict_raises(self):
        with self.assertRaises(SchedulingConflict):
            self.detector.ensure_no_conflict("prov-1", local(MONDAY, 11))

    def test_queries_only_active_bookings_in_window(self):
        repo = MagicMock()
        repo.get_provider_bookings.return_value = []

        ConflictDetector(repo).find_conflict("prov-1", local(MONDAY, 11))

        repo.get_provider_bookings.assert_called_once_with(
            "prov-1",
            statuses=ACTIVE_STATUSES,
            start=local(MONDAY, 9),
            end=local(MONDAY, 13),
        )

    def test_busy_starts_sorted(self):
        self.repo.add_booking(
            make_booking(booking_id="b-14", scheduled_at=local(MONDAY, 14), status=BookingStatus.IN_PROGRESS)
        )

        busy = self.detector.busy_starts("prov-1", local(MONDAY, 0), local(MONDAY, 23))

        self.assertEqual([local(MONDAY, 10), local(MONDAY, 14)], busy)


if __name__ == "__main__":
    unittest.main()

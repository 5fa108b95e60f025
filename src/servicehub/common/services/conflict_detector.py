from datetime import datetime, timedelta
from typing import Optional

from servicehub.common.models.bookings import ACTIVE_STATUSES, Booking
from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.utils.constants import CONFLICT_BUFFER
from servicehub.common.utils.custom_exceptions import SchedulingConflict


class ConflictDetector:
    def __init__(self, booking_repo: BookingRepository, buffer: timedelta = CONFLICT_BUFFER):
        self.booking_repo = booking_repo
        self.buffer = buffer

    def find_conflict(
        self,
        provider_id: str,
        candidate: datetime,
        buffer: Optional[timedelta] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[Booking]:
        buffer = self.buffer if buffer is None else buffer
        lower = candidate - buffer
        upper = candidate + buffer

        bookings = self.booking_repo.get_provider_bookings(
            provider_id, statuses=ACTIVE_STATUSES, start=lower, end=upper
        )
        for booking in bookings:
            if booking.booking_id == exclude_booking_id:
                continue
            if booking.status in ACTIVE_STATUSES and lower <= booking.scheduled_at <= upper:
                return booking
        return None

    def ensure_no_conflict(
        self,
        provider_id: str,
        candidate: datetime,
        buffer: Optional[timedelta] = None,
        exclude_booking_id: Optional[str] = None,
        message: str = "Provider is not available at this time",
    ):
        conflict = self.find_conflict(provider_id, candidate, buffer, exclude_booking_id)
        if conflict is not None:
            raise SchedulingConflict(message)

    def busy_starts(self, provider_id: str, start: datetime, end: datetime) -> list[datetime]:
        bookings = self.booking_repo.get_provider_bookings(
            provider_id, statuses=ACTIVE_STATUSES, start=start, end=end
        )
        return sorted(
            b.scheduled_at
            for b in bookings
            if b.status in ACTIVE_STATUSES and start <= b.scheduled_at <= end
        )

from datetime import datetime, timedelta, timezone


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to a given instant, moved forward explicitly."""

    def __init__(self, current: datetime):
        if current.tzinfo is None:
            raise ValueError("FixedClock needs a timezone-aware datetime")
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> datetime:
        self.current = self.current + delta
        return self.current

from dataclasses import dataclass, field
from typing import Optional

from servicehub.common.models.users import GeoPoint


@dataclass(frozen=True)
class DayHours:
    start: str
    end: str
    available: bool = True


@dataclass
class Provider:
    provider_id: str
    name: str
    phone: str
    email: str
    location: GeoPoint
    business_name: Optional[str] = None
    working_hours: dict[str, Optional[DayHours]] = field(default_factory=dict)
    is_available: bool = True
    is_active: bool = True
    is_banned: bool = False
    completed_jobs: int = 0

    @property
    def display_name(self) -> str:
        return self.business_name or self.name

    @property
    def is_bookable(self) -> bool:
        return self.is_active and not self.is_banned and self.is_available

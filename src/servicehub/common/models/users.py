from enum import Enum
from dataclasses import dataclass
from typing import Optional


class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    PROVIDER = "PROVIDER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass
class User:
    user_id: str
    name: str
    email: str
    phone_number: str
    role: UserRole = UserRole.CUSTOMER
    is_active: bool = True
    location: Optional[GeoPoint] = None


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: UserRole
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

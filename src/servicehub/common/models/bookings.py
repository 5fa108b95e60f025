from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from servicehub.common.models.users import GeoPoint


class BookingStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.EXPIRED}
)
ACTIVE_STATUSES = frozenset({BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS})


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class CancelledBy(str, Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"


@dataclass(frozen=True)
class ServiceRef:
    category: str
    subcategory: str


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    state: str
    pincode: str
    coordinates: Optional[GeoPoint] = None
    landmark: Optional[str] = None


@dataclass(frozen=True)
class AdditionalCharge:
    description: str
    amount: float


@dataclass(frozen=True)
class Pricing:
    base_price: float
    total_amount: float
    platform_fee: float
    provider_amount: float
    additional_charges: tuple[AdditionalCharge, ...] = ()
    discount: float = 0.0


@dataclass(frozen=True)
class TimelineEntry:
    status: str
    timestamp: datetime
    note: str = ""


@dataclass(frozen=True)
class CompletionOTP:
    otp_hash: str
    generated_at: datetime
    expires_at: datetime
    attempts: int = 0
    max_attempts: int = 3
    is_used: bool = False

    @property
    def attempts_remaining(self) -> int:
        return max(self.max_attempts - self.attempts, 0)


@dataclass(frozen=True)
class Cancellation:
    cancelled_by: CancelledBy
    reason: str
    cancelled_at: datetime
    refund_amount: float = 0.0


@dataclass(frozen=True)
class Completion:
    completed_at: datetime
    work_images: tuple[str, ...] = ()


@dataclass(frozen=True)
class Notes:
    customer: str = ""
    provider: str = ""
    admin: str = ""


@dataclass(frozen=True)
class Booking:
    booking_id: str
    customer_id: str
    provider_id: str
    service: ServiceRef
    scheduled_at: datetime
    pricing: Pricing
    address: Optional[Address] = None
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    timeline: tuple[TimelineEntry, ...] = ()
    notes: Notes = field(default_factory=Notes)
    completion_otp: Optional[CompletionOTP] = None
    cancellation: Optional[Cancellation] = None
    completion: Optional[Completion] = None
    expires_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 0

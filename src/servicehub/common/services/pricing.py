from datetime import datetime
from typing import Iterable

from servicehub.common.models.bookings import (
    AdditionalCharge,
    Booking,
    PaymentStatus,
    Pricing,
)
from servicehub.common.utils.constants import (
    COMMISSION_RATE,
    FULL_REFUND_NOTICE,
    PARTIAL_REFUND_NOTICE,
    PARTIAL_REFUND_RATE,
)
from servicehub.common.utils.custom_exceptions import ValidationError


def compute_pricing(
    base_price: float,
    additional_charges: Iterable[AdditionalCharge] = (),
    discount: float = 0.0,
    commission_rate: float = COMMISSION_RATE,
) -> Pricing:
    charges = tuple(additional_charges)
    total = round(base_price + sum(c.amount for c in charges) - discount, 2)
    if total < 0:
        raise ValidationError("Discount cannot exceed the booking amount")

    platform_fee = round(total * commission_rate, 2)
    return Pricing(
        base_price=base_price,
        additional_charges=charges,
        discount=discount,
        total_amount=total,
        platform_fee=platform_fee,
        provider_amount=round(total - platform_fee, 2),
    )


def calculate_refund_amount(booking: Booking, now: datetime) -> float:
    if booking.payment_status != PaymentStatus.PAID:
        return 0.0

    notice = booking.scheduled_at - now
    if notice > FULL_REFUND_NOTICE:
        return booking.pricing.total_amount
    if notice > PARTIAL_REFUND_NOTICE:
        return round(booking.pricing.total_amount * PARTIAL_REFUND_RATE, 2)
    return 0.0

"""Booking lifecycle transitions.

``transition`` takes a booking, an event and the current time and returns the
next booking value, or raises ``InvalidStateTransition``. Bookings are frozen,
so a rejected event leaves the caller's value exactly as it was. Persisting
the result is the caller's job.

    pending     -> accepted | cancelled | expired
    accepted    -> in_progress | cancelled
    in_progress -> completed

Reschedules keep the status. OTP events only touch ``completion_otp`` while
the booking is in progress.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional, Union

from servicehub.common.models.bookings import (
    Booking,
    BookingStatus,
    Cancellation,
    CancelledBy,
    Completion,
    CompletionOTP,
    PaymentStatus,
    TimelineEntry,
)
from servicehub.common.utils.constants import BOOKING_EXPIRY, MIN_RESCHEDULE_NOTICE
from servicehub.common.utils.custom_exceptions import (
    InvalidStateTransition,
    ValidationError,
)


@dataclass(frozen=True)
class Accept:
    pass


@dataclass(frozen=True)
class Reject:
    reason: str = "Rejected by provider"


@dataclass(frozen=True)
class Expire:
    pass


@dataclass(frozen=True)
class ConfirmPayment:
    pass


@dataclass(frozen=True)
class Cancel:
    cancelled_by: CancelledBy
    reason: str = ""
    refund_amount: float = 0.0


@dataclass(frozen=True)
class Reschedule:
    new_time: datetime
    rescheduled_by: CancelledBy


@dataclass(frozen=True)
class IssueOTP:
    otp: CompletionOTP


@dataclass(frozen=True)
class ConfirmOTPSent:
    pass


@dataclass(frozen=True)
class DiscardOTP:
    pass


@dataclass(frozen=True)
class RecordOTPAttempt:
    pass


@dataclass(frozen=True)
class Complete:
    work_images: tuple[str, ...] = ()
    provider_notes: Optional[str] = None


BookingEvent = Union[
    Accept,
    Reject,
    Expire,
    ConfirmPayment,
    Cancel,
    Reschedule,
    IssueOTP,
    ConfirmOTPSent,
    DiscardOTP,
    RecordOTPAttempt,
    Complete,
]


def new_booking(booking: Booking, now: datetime) -> Booking:
    """Initial state for a freshly requested booking."""
    return replace(
        booking,
        status=BookingStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        timeline=(TimelineEntry(BookingStatus.PENDING.value, now, "Booking created"),),
        completion_otp=None,
        cancellation=None,
        completion=None,
        expires_at=now + BOOKING_EXPIRY,
        created_at=now,
        version=0,
    )


def is_expired(booking: Booking, now: datetime) -> bool:
    return (
        booking.status == BookingStatus.PENDING
        and booking.expires_at is not None
        and booking.expires_at <= now
    )


def _log(booking: Booking, status: str, now: datetime, note: str) -> tuple:
    return booking.timeline + (TimelineEntry(status, now, note),)


def _not_expired(booking: Booking, now: datetime):
    if is_expired(booking, now):
        raise InvalidStateTransition("Booking has expired")


def _accept(booking: Booking, event: Accept, now: datetime) -> Booking:
    _not_expired(booking, now)
    return replace(
        booking,
        status=BookingStatus.ACCEPTED,
        expires_at=None,
        timeline=_log(booking, "accepted", now, "Booking accepted by provider"),
    )


def _reject(booking: Booking, event: Reject, now: datetime) -> Booking:
    _not_expired(booking, now)
    reason = (event.reason or "Rejected by provider").strip()
    return replace(
        booking,
        status=BookingStatus.CANCELLED,
        expires_at=None,
        cancellation=Cancellation(
            cancelled_by=CancelledBy.PROVIDER, reason=reason, cancelled_at=now
        ),
        timeline=_log(booking, "cancelled", now, f"Rejected by provider: {reason}"),
    )


def _expire(booking: Booking, event: Expire, now: datetime) -> Booking:
    if not is_expired(booking, now):
        raise InvalidStateTransition("Booking has not reached its expiry time")
    return replace(
        booking,
        status=BookingStatus.EXPIRED,
        expires_at=None,
        timeline=_log(
            booking, "expired", now, "Booking expired without provider response"
        ),
    )


def _confirm_payment(booking: Booking, event: ConfirmPayment, now: datetime) -> Booking:
    return replace(
        booking,
        status=BookingStatus.IN_PROGRESS,
        payment_status=PaymentStatus.PAID,
        timeline=_log(booking, "in_progress", now, "Payment verified and recorded"),
    )


def _cancel(booking: Booking, event: Cancel, now: datetime) -> Booking:
    _not_expired(booking, now)
    reason = (event.reason or "").strip()
    party = event.cancelled_by.value
    return replace(
        booking,
        status=BookingStatus.CANCELLED,
        expires_at=None,
        cancellation=Cancellation(
            cancelled_by=event.cancelled_by,
            reason=reason or "Cancelled",
            cancelled_at=now,
            refund_amount=event.refund_amount,
        ),
        timeline=_log(
            booking,
            "cancelled",
            now,
            f"Cancelled by {party}: {reason or 'No reason provided'}",
        ),
    )


def _reschedule(booking: Booking, event: Reschedule, now: datetime) -> Booking:
    _not_expired(booking, now)
    if event.new_time < now + MIN_RESCHEDULE_NOTICE:
        raise ValidationError("New time must be at least 2 hours from now")
    note = (
        f"Booking rescheduled by {event.rescheduled_by.value} from "
        f"{booking.scheduled_at.isoformat()} to {event.new_time.isoformat()}"
    )
    return replace(
        booking,
        scheduled_at=event.new_time,
        timeline=_log(booking, "rescheduled", now, note),
    )


def _issue_otp(booking: Booking, event: IssueOTP, now: datetime) -> Booking:
    return replace(booking, completion_otp=event.otp)


def _confirm_otp_sent(booking: Booking, event: ConfirmOTPSent, now: datetime) -> Booking:
    if booking.completion_otp is None:
        raise InvalidStateTransition("No completion OTP is pending for this booking")
    return replace(
        booking,
        timeline=_log(booking, "otp_generated", now, "Completion OTP sent to customer"),
    )


def _discard_otp(booking: Booking, event: DiscardOTP, now: datetime) -> Booking:
    return replace(booking, completion_otp=None)


def _record_otp_attempt(booking: Booking, event: RecordOTPAttempt, now: datetime) -> Booking:
    otp = booking.completion_otp
    if otp is None:
        raise InvalidStateTransition("No completion OTP is pending for this booking")
    return replace(booking, completion_otp=replace(otp, attempts=otp.attempts + 1))


def _complete(booking: Booking, event: Complete, now: datetime) -> Booking:
    otp = booking.completion_otp
    if otp is None or otp.is_used:
        raise InvalidStateTransition("Booking cannot be completed without a valid OTP")

    notes = booking.notes
    if event.provider_notes:
        notes = replace(notes, provider=event.provider_notes)

    # the OTP is consumed by this write; completed bookings carry none
    return replace(
        booking,
        status=BookingStatus.COMPLETED,
        completion_otp=None,
        completion=Completion(completed_at=now, work_images=tuple(event.work_images)),
        notes=notes,
        timeline=_log(
            booking,
            "completed",
            now,
            "Work completed by provider and verified by customer via OTP",
        ),
    )


_PENDING = frozenset({BookingStatus.PENDING})
_OPEN = frozenset({BookingStatus.PENDING, BookingStatus.ACCEPTED})
_IN_PROGRESS = frozenset({BookingStatus.IN_PROGRESS})

TRANSITIONS: dict[type, tuple[frozenset, Callable[[Booking, object, datetime], Booking]]] = {
    Accept: (_PENDING, _accept),
    Reject: (_PENDING, _reject),
    Expire: (_PENDING, _expire),
    ConfirmPayment: (frozenset({BookingStatus.ACCEPTED}), _confirm_payment),
    Cancel: (_OPEN, _cancel),
    Reschedule: (_OPEN, _reschedule),
    IssueOTP: (_IN_PROGRESS, _issue_otp),
    ConfirmOTPSent: (_IN_PROGRESS, _confirm_otp_sent),
    DiscardOTP: (_IN_PROGRESS, _discard_otp),
    RecordOTPAttempt: (_IN_PROGRESS, _record_otp_attempt),
    Complete: (_IN_PROGRESS, _complete),
}


def transition(booking: Booking, event: BookingEvent, now: datetime) -> Booking:
    try:
        allowed, apply = TRANSITIONS[type(event)]
    except KeyError:
        raise InvalidStateTransition(f"Unknown booking event {type(event).__name__}")

    if booking.status not in allowed:
        raise InvalidStateTransition(
            f"Cannot apply {type(event).__name__} to a booking that is "
            f"{booking.status.value}"
        )
    return apply(booking, event, now)

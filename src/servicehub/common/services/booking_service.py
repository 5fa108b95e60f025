import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import List, Optional
from uuid import uuid4

from botocore.exceptions import ClientError

from servicehub.common.models.bookings import (
    Booking,
    BookingStatus,
    CancelledBy,
    Notes,
    ServiceRef,
)
from servicehub.common.models.users import Caller, UserRole
from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.repository.user_repo import UserRepository
from servicehub.common.schemas.bookings import BookingRequest
from servicehub.common.services import availability
from servicehub.common.services.booking_state import (
    Accept,
    BookingEvent,
    Cancel,
    ConfirmPayment,
    Expire,
    Reject,
    Reschedule,
    is_expired,
    new_booking,
    transition,
)
from servicehub.common.services.conflict_detector import ConflictDetector
from servicehub.common.services.notification_service import NotificationService
from servicehub.common.services.pricing import calculate_refund_amount, compute_pricing
from servicehub.common.services.schedule_service import SchedulerService
from servicehub.common.utils.clock import SystemClock
from servicehub.common.utils.constants import SERVICE_RADIUS_METERS, service_duration
from servicehub.common.utils.custom_exceptions import (
    ConcurrentModification,
    InvalidStateTransition,
    NotFoundException,
    OutOfServiceArea,
    SchedulingConflict,
    Unauthorized,
    ValidationError,
)
from servicehub.common.utils.datetime_normaliser import local_timezone
from servicehub.common.utils.geo import distance_meters

logger = logging.getLogger(__name__)


class BookingService:
    def __init__(
        self,
        booking_repo: BookingRepository,
        provider_repo: ProviderRepository,
        user_repo: UserRepository,
        conflict_detector: Optional[ConflictDetector] = None,
        notification_service: Optional[NotificationService] = None,
        schedule_service: Optional[SchedulerService] = None,
        clock=None,
        tz: Optional[tzinfo] = None,
    ):
        self.booking_repo = booking_repo
        self.provider_repo = provider_repo
        self.user_repo = user_repo
        self.conflict_detector = conflict_detector or ConflictDetector(booking_repo)
        self.notification_service = notification_service
        self.schedule_service = schedule_service
        self.clock = clock or SystemClock()
        self.tz = tz or local_timezone()

    def create_booking(self, req: BookingRequest, caller: Caller) -> Booking:
        if caller.role != UserRole.CUSTOMER:
            raise Unauthorized("Only customers can create bookings")

        customer = self.user_repo.get_by_id(caller.user_id)
        if customer is None:
            raise NotFoundException("user", caller.user_id)
        if customer.location is None:
            raise ValidationError(
                "User location not found. Please update your profile with location."
            )

        provider = self.provider_repo.get_by_id(req.provider_id)
        if provider is None:
            raise NotFoundException("provider", req.provider_id)
        if not provider.is_bookable:
            raise SchedulingConflict("Provider is currently unavailable")

        if distance_meters(customer.location, provider.location) > SERVICE_RADIUS_METERS:
            raise OutOfServiceArea("Provider is outside 10km radius. Cannot book.")

        now = self.clock.now()
        scheduled_at = req.scheduled_date_time
        if scheduled_at <= now:
            raise ValidationError("Scheduled time must be in the future")

        local = scheduled_at.astimezone(self.tz)
        day = availability.day_name(local.date())
        hours = availability.hours_for_day(provider.working_hours, local.date())
        if hours is None:
            raise SchedulingConflict(f"Provider is not available on {day}")
        if not availability.is_within_working_hours(provider.working_hours, scheduled_at, self.tz):
            raise SchedulingConflict(
                f"Provider is only available between {hours.start} and {hours.end} on {day}"
            )

        self.conflict_detector.ensure_no_conflict(provider.provider_id, scheduled_at)

        booking = new_booking(
            Booking(
                booking_id=str(uuid4()),
                customer_id=customer.user_id,
                provider_id=provider.provider_id,
                service=ServiceRef(req.service.category, req.service.subcategory),
                scheduled_at=scheduled_at,
                pricing=compute_pricing(
                    req.pricing.base_price, req.pricing.charges(), req.pricing.discount
                ),
                address=req.address.to_domain(),
                notes=Notes(customer=req.notes),
            ),
            now,
        )
        self.booking_repo.add_booking(booking)
        logger.info(f"Booking {booking.booking_id} created for provider {provider.provider_id}")

        if self.schedule_service:
            try:
                self.schedule_service.schedule_booking_expiry(
                    booking_id=booking.booking_id, expires_at=booking.expires_at
                )
            except ClientError as err:
                # expiry is still enforced lazily on the next pending-only operation
                logger.error(f"Could not schedule expiry for {booking.booking_id}: {err}")

        self._notify("booking_created", booking)
        return booking

    def accept_booking(self, booking_id: str, caller: Caller) -> Booking:
        booking = self._get_open_booking(booking_id)
        self._require_provider(booking, caller, "Not authorized to access this booking")
        self.conflict_detector.ensure_no_conflict(
            booking.provider_id,
            booking.scheduled_at,
            exclude_booking_id=booking.booking_id,
            message="You already have an accepted booking around this time",
        )

        accepted = self._apply(booking, Accept())
        logger.info(f"Booking {booking_id} accepted")
        self._notify("booking_accepted", accepted)
        return accepted

    def reject_booking(self, booking_id: str, caller: Caller, reason: Optional[str] = None) -> Booking:
        booking = self._get_open_booking(booking_id)
        self._require_provider(booking, caller, "Not authorized to access this booking")

        rejected = self._apply(booking, Reject(reason or "Rejected by provider"))
        logger.info(f"Booking {booking_id} rejected")
        self._notify("booking_rejected", rejected)
        return rejected

    def cancel_booking(self, booking_id: str, caller: Caller, reason: Optional[str] = None) -> Booking:
        booking = self._get_open_booking(booking_id)
        party = self._party(booking, caller)
        if party is None:
            raise Unauthorized("Not authorized to cancel this booking")

        refund = calculate_refund_amount(booking, self.clock.now())
        cancelled = self._apply(booking, Cancel(party, reason or "", refund))
        logger.info(f"Booking {booking_id} cancelled by {party.value}, refund {refund}")
        self._notify("booking_cancelled", cancelled)
        return cancelled

    def reschedule_booking(self, booking_id: str, caller: Caller, new_time: datetime) -> Booking:
        booking = self._get_open_booking(booking_id)
        party = self._party(booking, caller)
        if party is None or party == CancelledBy.ADMIN:
            raise Unauthorized("Not authorized to reschedule this booking")

        now = self.clock.now()
        rescheduled = transition(booking, Reschedule(new_time, party), now)
        self.conflict_detector.ensure_no_conflict(
            booking.provider_id,
            new_time,
            buffer=service_duration(booking.service.subcategory),
            exclude_booking_id=booking.booking_id,
            message="Provider is not available at the new time",
        )

        saved = self._save(booking, rescheduled)
        logger.info(f"Booking {booking_id} rescheduled to {new_time.isoformat()}")
        self._notify(
            f"booking_rescheduled_by_{party.value}",
            saved,
            old_scheduled_at=booking.scheduled_at,
        )
        return saved

    def confirm_payment(self, booking_id: str) -> Booking:
        booking = self._get_booking(booking_id)
        started = self._apply(booking, ConfirmPayment())
        logger.info(f"Payment confirmed for booking {booking_id}")
        return started

    def expire_booking(self, booking_id: str) -> Optional[Booking]:
        """Expires the booking if it is still pending past its deadline."""
        booking = self._get_booking(booking_id)
        if not is_expired(booking, self.clock.now()):
            return None
        return self._expire(booking)

    def expire_stale_bookings(self) -> List[str]:
        expired = []
        for booking in self.booking_repo.get_expired_pending(self.clock.now()):
            try:
                self._expire(booking)
            except InvalidStateTransition as err:
                logger.info(f"Skipping expiry of {booking.booking_id}: {err}")
                continue
            expired.append(booking.booking_id)
        return expired

    def get_booking(self, booking_id: str, caller: Caller) -> Booking:
        booking = self._get_booking(booking_id)
        if self._party(booking, caller) is None:
            raise Unauthorized("Not authorized to access this booking")
        return booking

    def get_my_bookings(
        self,
        caller: Caller,
        status: Optional[BookingStatus] = None,
        customer_id: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> List[Booking]:
        if caller.role == UserRole.CUSTOMER:
            return self.booking_repo.get_customer_bookings(caller.user_id, status)

        if caller.role == UserRole.PROVIDER:
            bookings = self.booking_repo.get_provider_bookings(caller.user_id)
        elif customer_id:
            return self.booking_repo.get_customer_bookings(customer_id, status)
        elif provider_id:
            bookings = self.booking_repo.get_provider_bookings(provider_id)
        else:
            raise ValidationError("Admins must filter bookings by customer_id or provider_id")

        if status is not None:
            bookings = [b for b in bookings if b.status == status]
        return bookings

    def check_provider_availability(
        self, provider_id: str, on_date: date, duration_hours: int
    ) -> dict:
        provider = self.provider_repo.get_by_id(provider_id)
        if provider is None:
            raise NotFoundException("provider", provider_id)

        hours = availability.hours_for_day(provider.working_hours, on_date)
        if hours is None:
            return {
                "available": False,
                "reason": "Provider does not work on this day",
                "available_slots": [],
            }

        window_start, window_end = availability.window_on(hours, on_date, self.tz)
        day_start = window_start.replace(hour=0, minute=0)
        day_end = day_start + timedelta(days=1) - timedelta(microseconds=1)
        busy = self.conflict_detector.busy_starts(provider_id, day_start, day_end)

        slots = availability.generate_slots(
            window_start, window_end, timedelta(hours=duration_hours), busy
        )
        return {
            "available": bool(slots),
            "available_slots": [slot.as_dict() for slot in slots],
            "working_hours": {"start": hours.start, "end": hours.end},
        }

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repo.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("booking", booking_id)
        return booking

    def _get_open_booking(self, booking_id: str) -> Booking:
        """Loads a booking, expiring it first if its pending deadline has passed."""
        booking = self._get_booking(booking_id)
        if is_expired(booking, self.clock.now()):
            self._expire(booking)
            raise InvalidStateTransition("Booking has expired")
        return booking

    def _expire(self, booking: Booking) -> Booking:
        expired = self._apply(booking, Expire())
        logger.info(f"Booking {booking.booking_id} expired")
        self._notify("booking_expired", expired)
        return expired

    def _apply(self, booking: Booking, event: BookingEvent) -> Booking:
        return self._save(booking, transition(booking, event, self.clock.now()))

    def _save(self, original: Booking, updated: Booking) -> Booking:
        try:
            return self.booking_repo.save_booking(updated, expected_version=original.version)
        except ConcurrentModification:
            raise InvalidStateTransition("Booking was modified by another request")

    @staticmethod
    def _party(booking: Booking, caller: Caller) -> Optional[CancelledBy]:
        if caller.user_id == booking.customer_id:
            return CancelledBy.CUSTOMER
        if caller.user_id == booking.provider_id:
            return CancelledBy.PROVIDER
        if caller.is_admin:
            return CancelledBy.ADMIN
        return None

    @staticmethod
    def _require_provider(booking: Booking, caller: Caller, message: str):
        if caller.user_id != booking.provider_id:
            raise Unauthorized(message)

    def _notify(self, event_type: str, booking: Booking, **extra):
        if not self.notification_service:
            return
        try:
            customer = self.user_repo.get_by_id(booking.customer_id)
            provider = self.provider_repo.get_by_id(booking.provider_id)
            self.notification_service.notify(
                event_type, booking, customer=customer, provider=provider, **extra
            )
        except Exception:
            logger.exception(f"Notification {event_type} failed for booking {booking.booking_id}")


"""Completion OTP protocol.

The provider asks for a code when the work is done, the customer receives it
by SMS and reads it back to the provider, who submits it to close the
booking. Only a bcrypt hash of the code is ever stored.
"""

import logging
import math
import secrets
from typing import Optional, Sequence

import bcrypt
from botocore.exceptions import ClientError

from servicehub.common.models.bookings import Booking, BookingStatus, CompletionOTP
from servicehub.common.models.users import Caller
from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.repository.user_repo import UserRepository
from servicehub.common.services.booking_state import (
    BookingEvent,
    Complete,
    ConfirmOTPSent,
    DiscardOTP,
    IssueOTP,
    RecordOTPAttempt,
    transition,
)
from servicehub.common.services.notification_service import NotificationService
from servicehub.common.services.sms_service import SmsService
from servicehub.common.utils.clock import SystemClock
from servicehub.common.utils.constants import (
    OTP_LENGTH,
    OTP_MAX_ATTEMPTS,
    OTP_RESEND_INTERVAL,
    OTP_TTL,
)
from servicehub.common.utils.custom_exceptions import (
    AttemptsExceeded,
    ConcurrentModification,
    InvalidOTP,
    InvalidStateTransition,
    NotFoundException,
    OTPDeliveryFailed,
    OTPExpired,
    RateLimited,
    SmsDeliveryError,
    Unauthorized,
    ValidationError,
)

logger = logging.getLogger(__name__)


def generate_code(length: int = OTP_LENGTH) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_code(code: str) -> str:
    return bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt()).decode()


def code_matches(code: str, otp_hash: str) -> bool:
    return bcrypt.checkpw(code.encode("utf-8"), otp_hash.encode("utf-8"))


def mask_phone(phone_number: str) -> str:
    return f"*****{str(phone_number)[-4:]}"


class CompletionOTPService:
    def __init__(
        self,
        booking_repo: BookingRepository,
        provider_repo: ProviderRepository,
        user_repo: UserRepository,
        sms_service: SmsService,
        notification_service: Optional[NotificationService] = None,
        clock=None,
    ):
        self.booking_repo = booking_repo
        self.provider_repo = provider_repo
        self.user_repo = user_repo
        self.sms_service = sms_service
        self.notification_service = notification_service
        self.clock = clock or SystemClock()

    def generate_otp(self, booking_id: str, caller: Caller) -> dict:
        booking = self._get_provider_booking(booking_id, caller)
        if booking.status != BookingStatus.IN_PROGRESS:
            raise InvalidStateTransition("OTP can only be generated for in-progress bookings")

        now = self.clock.now()
        current = booking.completion_otp
        if current is not None and not current.is_used and now < current.expires_at:
            wait = current.generated_at + OTP_RESEND_INTERVAL - now
            if wait.total_seconds() > 0:
                raise RateLimited(math.ceil(wait.total_seconds()))

        customer = self.user_repo.get_by_id(booking.customer_id)
        if customer is None or not customer.phone_number:
            raise ValidationError("Customer has no phone number on file")

        code = generate_code()
        otp = CompletionOTP(
            otp_hash=hash_code(code),
            generated_at=now,
            expires_at=now + OTP_TTL,
            attempts=0,
            max_attempts=OTP_MAX_ATTEMPTS,
        )
        booking = self._apply(booking, IssueOTP(otp))

        message = (
            f"Your ServiceHub completion code for booking {booking.booking_id} is "
            f"{code}. It is valid for {int(OTP_TTL.total_seconds() // 60)} minutes. "
            "Share it with your provider only once the work is done."
        )
        try:
            self.sms_service.send(customer.phone_number, message)
        except SmsDeliveryError:
            self._apply(booking, DiscardOTP())
            raise OTPDeliveryFailed("Failed to send OTP. Please try again later.")
        except Exception:
            # a code the customer never received must not stay on the booking
            self._apply(booking, DiscardOTP())
            raise

        self._apply(booking, ConfirmOTPSent())
        logger.info(f"Completion OTP issued for booking {booking.booking_id}")
        return {
            "sent_to": mask_phone(customer.phone_number),
            "expires_at": otp.expires_at,
        }

    def verify_otp(
        self,
        booking_id: str,
        caller: Caller,
        otp: str,
        work_images: Sequence[str] = (),
        notes: Optional[str] = None,
    ) -> Booking:
        booking = self._get_provider_booking(booking_id, caller)
        if booking.status != BookingStatus.IN_PROGRESS:
            raise InvalidStateTransition("Booking is not in progress")

        record = booking.completion_otp
        if record is None or record.is_used:
            raise InvalidOTP("No OTP found. Please generate a new one.")
        if self.clock.now() >= record.expires_at:
            raise OTPExpired("OTP has expired. Please generate a new one.")
        if record.attempts >= record.max_attempts:
            raise AttemptsExceeded("Maximum OTP attempts exceeded. Please generate a new one.")

        # persisted before the code is compared
        booking = self._apply(booking, RecordOTPAttempt())
        record = booking.completion_otp

        if not code_matches(otp, record.otp_hash):
            logger.info(f"Wrong completion OTP for booking {booking_id}")
            if record.attempts_remaining == 0:
                raise AttemptsExceeded(
                    "Maximum OTP attempts exceeded. Please generate a new one."
                )
            raise InvalidOTP("Invalid OTP", attempts_remaining=record.attempts_remaining)

        completed = self._apply(
            booking, Complete(work_images=tuple(work_images), provider_notes=notes)
        )
        logger.info(f"Booking {booking_id} completed")

        try:
            self.provider_repo.increment_completed_jobs(completed.provider_id)
        except (ClientError, NotFoundException) as err:
            logger.error(
                f"Could not count completed job for provider {completed.provider_id}: {err}"
            )

        self._notify(completed)
        return completed

    def _get_provider_booking(self, booking_id: str, caller: Caller) -> Booking:
        booking = self.booking_repo.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("booking", booking_id)
        if caller.user_id != booking.provider_id:
            raise Unauthorized("Only the assigned provider can manage the completion OTP")
        return booking

    def _apply(self, booking: Booking, event: BookingEvent) -> Booking:
        updated = transition(booking, event, self.clock.now())
        try:
            return self.booking_repo.save_booking(updated, expected_version=booking.version)
        except ConcurrentModification:
            raise InvalidStateTransition("Booking was modified by another request")

    def _notify(self, booking: Booking):
        if not self.notification_service:
            return
        try:
            self.notification_service.notify(
                "booking_completed",
                booking,
                customer=self.user_repo.get_by_id(booking.customer_id),
                provider=self.provider_repo.get_by_id(booking.provider_id),
            )
        except Exception:
            logger.exception(f"Completion notification failed for booking {booking.booking_id}")


import boto3
import logging
from botocore.exceptions import ClientError
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from servicehub.common.models.bookings import Booking
from servicehub.common.models.providers import Provider
from servicehub.common.models.users import User

logger = logging.getLogger(__name__)

CUSTOMER = "customer"
PROVIDER = "provider"

# event type -> (recipients, subject)
EVENTS = {
    "booking_created": ((PROVIDER,), "New booking request"),
    "booking_accepted": ((CUSTOMER,), "Your booking has been accepted"),
    "booking_rejected": ((CUSTOMER,), "Your booking was declined"),
    "booking_cancelled": ((CUSTOMER, PROVIDER), "Booking cancelled"),
    "booking_expired": ((CUSTOMER,), "Your booking request expired"),
    "booking_completed": ((CUSTOMER, PROVIDER), "Booking completed"),
    "booking_rescheduled_by_customer": ((PROVIDER,), "Booking rescheduled by customer"),
    "booking_rescheduled_by_provider": ((CUSTOMER,), "Booking rescheduled by provider"),
}


class NotificationService:
    def __init__(self, sender: str, region="ap-south-1"):
        self.sender = sender
        self.ses = boto3.client("ses", region_name=region)

    def notify(
        self,
        event_type: str,
        booking: Booking,
        customer: Optional[User] = None,
        provider: Optional[Provider] = None,
        **extra,
    ):
        """Fire-and-forget: delivery problems are logged and never raised."""
        if event_type not in EVENTS:
            logger.error(f"Unknown notification event {event_type}")
            return

        recipients, subject = EVENTS[event_type]
        body = self._body(event_type, booking, provider, extra)

        for recipient in recipients:
            party = customer if recipient == CUSTOMER else provider
            address = getattr(party, "email", None)
            if not address:
                logger.info(
                    f"Skipping {event_type} for booking {booking.booking_id}: "
                    f"no {recipient} email"
                )
                continue
            try:
                self.send_email(address, f"{subject} ({booking.booking_id})", body)
            except ClientError as err:
                logger.error(
                    f"Failed to send {event_type} for booking {booking.booking_id}: {err}"
                )

    def send_email(self, recipient: str, subject: str, body: str):
        msg = MIMEMultipart()
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        self.ses.send_raw_email(
            Source=self.sender,
            Destinations=[recipient],
            RawMessage={"Data": msg.as_string()},
        )

    @staticmethod
    def _body(event_type: str, booking: Booking, provider: Optional[Provider], extra: dict) -> str:
        lines = [
            "Hello,",
            "",
            f"Booking ID: {booking.booking_id}",
            f"Service: {booking.service.category} / {booking.service.subcategory}",
            f"Scheduled for: {booking.scheduled_at.isoformat()}",
            f"Status: {booking.status.value}",
        ]
        if provider is not None:
            lines.append(f"Service Provider: {provider.display_name}")
        if booking.cancellation is not None:
            lines.append(f"Reason: {booking.cancellation.reason}")
            if booking.cancellation.refund_amount:
                lines.append(f"Refund: ₹{booking.cancellation.refund_amount}")
        if "old_scheduled_at" in extra:
            lines.append(f"Previously scheduled for: {extra['old_scheduled_at'].isoformat()}")
        lines += ["", "Thank you for using ServiceHub."]
        return "\n".join(lines)

import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError

from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.repository.user_repo import UserRepository
from servicehub.common.services.booking_service import BookingService
from servicehub.common.services.notification_service import NotificationService
from servicehub.common.utils.custom_exceptions import BookingError

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME")
AWS_REGION = os.environ.get("AWS_REGION", "ap-south-1")
NOTIFICATION_SENDER = os.environ.get("NOTIFICATION_SENDER")

dynamodb = resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(TABLE_NAME)

notification_service = None
if NOTIFICATION_SENDER:
    notification_service = NotificationService(NOTIFICATION_SENDER, region=AWS_REGION)

booking_service = BookingService(
    booking_repo=BookingRepository(table),
    provider_repo=ProviderRepository(table),
    user_repo=UserRepository(table),
    notification_service=notification_service,
)


def expire_booking(event, context):
    """Target of the one-shot schedule created with each booking."""
    booking_id = event.get("booking_id")
    if not booking_id:
        raise KeyError("Missing booking_id in event")

    try:
        expired = booking_service.expire_booking(booking_id)
    except BookingError as err:
        logger.info(f"Booking {booking_id} not expired: {err}")
        return {"booking_id": booking_id, "expired": False}
    except ClientError as err:
        logger.error(f"Expiry of booking {booking_id} failed: {err}")
        raise

    return {"booking_id": booking_id, "expired": expired is not None}


def expire_stale_bookings(event, context):
    try:
        expired = booking_service.expire_stale_bookings()
    except ClientError as err:
        logger.error(f"Expiry sweep failed: {err}")
        raise

    return {"expired": expired, "count": len(expired)}

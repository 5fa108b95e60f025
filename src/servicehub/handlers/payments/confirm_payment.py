import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError

from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.repository.user_repo import UserRepository
from servicehub.common.schemas.bookings import booking_view
from servicehub.common.services.booking_service import BookingService
from servicehub.common.utils.custom_exceptions import BookingError, ValidationError
from servicehub.common.utils.custom_response import send_custom_response, send_error_response

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME")
AWS_REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(TABLE_NAME)

booking_service = BookingService(
    booking_repo=BookingRepository(table),
    provider_repo=ProviderRepository(table),
    user_repo=UserRepository(table),
)


def confirm_payment(event, context):
    """Invoked by the payment integration once it has verified the payment."""
    try:
        booking_id = event.get("booking_id")
        if not booking_id:
            raise ValidationError("Missing booking_id in event")

        booking = booking_service.confirm_payment(booking_id)
        return send_custom_response(200, "Payment confirmed", booking_view(booking))

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error confirming payment: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error confirming payment")
        return send_custom_response(500, "Internal server error")

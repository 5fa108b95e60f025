import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError
from pydantic import ValidationError

from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.repository.user_repo import UserRepository
from servicehub.common.schemas.bookings import BookingRequest, booking_view
from servicehub.common.services.booking_service import BookingService
from servicehub.common.services.notification_service import NotificationService
from servicehub.common.services.schedule_service import SchedulerService
from servicehub.common.utils.custom_exceptions import BookingError
from servicehub.common.utils.custom_response import (
    send_custom_response,
    send_error_response,
    send_validation_error,
)
from servicehub.common.utils.identity import caller_from_event

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME")
AWS_REGION = os.environ.get("AWS_REGION", "ap-south-1")
EXPIRE_BOOKING_LAMBDA_ARN = os.environ.get("EXPIRE_BOOKING_LAMBDA_ARN")
SCHEDULER_ROLE_ARN = os.environ.get("SCHEDULER_ROLE_ARN")
NOTIFICATION_SENDER = os.environ.get("NOTIFICATION_SENDER")

dynamodb = resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(TABLE_NAME)

booking_repo = BookingRepository(table)
provider_repo = ProviderRepository(table)
user_repo = UserRepository(table)

scheduler_service = None
if EXPIRE_BOOKING_LAMBDA_ARN and SCHEDULER_ROLE_ARN:
    scheduler_service = SchedulerService(
        EXPIRE_BOOKING_LAMBDA_ARN, SCHEDULER_ROLE_ARN, region=AWS_REGION
    )

notification_service = None
if NOTIFICATION_SENDER:
    notification_service = NotificationService(NOTIFICATION_SENDER, region=AWS_REGION)

booking_service = BookingService(
    booking_repo=booking_repo,
    provider_repo=provider_repo,
    user_repo=user_repo,
    notification_service=notification_service,
    schedule_service=scheduler_service,
)


def create_booking(event, context):
    if not event.get("body"):
        return send_custom_response(400, "Request body is required", error="ValidationError")

    try:
        caller = caller_from_event(event)
        request_body = BookingRequest.model_validate_json(event["body"])
        booking = booking_service.create_booking(request_body, caller)

        return send_custom_response(201, "Booking created successfully", booking_view(booking))

    except ValidationError as err:
        return send_validation_error(err)

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error creating booking: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error creating booking")
        return send_custom_response(500, "Internal server error")

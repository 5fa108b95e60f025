import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError
from pydantic import ValidationError

from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.repository.user_repo import UserRepository
from servicehub.common.schemas.bookings import ReasonRequest, RescheduleRequest, booking_view
from servicehub.common.services.booking_service import BookingService
from servicehub.common.services.notification_service import NotificationService
from servicehub.common.utils.custom_exceptions import BookingError
from servicehub.common.utils.custom_response import (
    send_custom_response,
    send_error_response,
    send_validation_error,
)
from servicehub.common.utils.identity import caller_from_event, json_body, path_param

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


def _respond(event, action, success_message):
    try:
        booking = action(event)
        return send_custom_response(200, success_message, booking_view(booking))

    except ValidationError as err:
        return send_validation_error(err)

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error updating booking: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error updating booking")
        return send_custom_response(500, "Internal server error")


def _reason(event):
    body = json_body(event, required=False) or {}
    return ReasonRequest.model_validate(body).reason


def accept_booking(event, context):
    return _respond(
        event,
        lambda e: booking_service.accept_booking(
            path_param(e, "booking_id"), caller_from_event(e)
        ),
        "Booking accepted successfully",
    )


def reject_booking(event, context):
    return _respond(
        event,
        lambda e: booking_service.reject_booking(
            path_param(e, "booking_id"), caller_from_event(e), _reason(e)
        ),
        "Booking rejected successfully",
    )


def cancel_booking(event, context):
    return _respond(
        event,
        lambda e: booking_service.cancel_booking(
            path_param(e, "booking_id"), caller_from_event(e), _reason(e)
        ),
        "Booking cancelled successfully",
    )


def reschedule_booking(event, context):
    def reschedule(e):
        request_body = RescheduleRequest.model_validate(json_body(e))
        return booking_service.reschedule_booking(
            path_param(e, "booking_id"), caller_from_event(e), request_body.new_date_time
        )

    return _respond(event, reschedule, "Booking rescheduled successfully")

import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError
from pydantic import ValidationError

from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.repository.user_repo import UserRepository
from servicehub.common.schemas.bookings import VerifyOTPRequest, booking_view
from servicehub.common.services.completion_otp_service import CompletionOTPService
from servicehub.common.services.notification_service import NotificationService
from servicehub.common.services.sms_service import SmsService
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

otp_service = CompletionOTPService(
    booking_repo=BookingRepository(table),
    provider_repo=ProviderRepository(table),
    user_repo=UserRepository(table),
    sms_service=SmsService(region=AWS_REGION),
    notification_service=notification_service,
)


def generate_otp(event, context):
    try:
        result = otp_service.generate_otp(
            path_param(event, "booking_id"), caller_from_event(event)
        )
        return send_custom_response(
            200, f"OTP sent to customer's phone number {result['sent_to']}", result
        )

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error generating OTP: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error generating OTP")
        return send_custom_response(500, "Internal server error")


def verify_otp(event, context):
    try:
        booking_id = path_param(event, "booking_id")
        caller = caller_from_event(event)
        request_body = VerifyOTPRequest.model_validate(json_body(event))

        booking = otp_service.verify_otp(
            booking_id,
            caller,
            request_body.otp,
            work_images=request_body.work_images,
            notes=request_body.notes,
        )
        return send_custom_response(
            200, "Booking completed successfully", booking_view(booking)
        )

    except ValidationError as err:
        return send_validation_error(err)

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error verifying OTP: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error verifying OTP")
        return send_custom_response(500, "Internal server error")

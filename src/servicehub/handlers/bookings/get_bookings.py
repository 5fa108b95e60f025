import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError
from pydantic import ValidationError

from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.repository.user_repo import UserRepository
from servicehub.common.schemas.bookings import BookingListQuery, booking_view
from servicehub.common.services.booking_service import BookingService
from servicehub.common.utils.custom_exceptions import BookingError
from servicehub.common.utils.custom_response import (
    send_custom_response,
    send_error_response,
    send_validation_error,
)
from servicehub.common.utils.identity import caller_from_event, path_param, query_params

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


def get_booking(event, context):
    try:
        booking = booking_service.get_booking(
            path_param(event, "booking_id"), caller_from_event(event)
        )
        return send_custom_response(200, "Booking retrieved successfully", booking_view(booking))

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error fetching booking: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error fetching booking")
        return send_custom_response(500, "Internal server error")


def get_my_bookings(event, context):
    try:
        caller = caller_from_event(event)
        query = BookingListQuery.model_validate(query_params(event))

        bookings = booking_service.get_my_bookings(
            caller,
            status=query.status,
            customer_id=query.customer_id,
            provider_id=query.provider_id,
        )
        result = [booking_view(b) for b in bookings]

        return send_custom_response(
            200,
            "Bookings retrieved successfully",
            {"count": len(result), "bookings": result},
        )

    except ValidationError as err:
        return send_validation_error(err)

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error listing bookings: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error listing bookings")
        return send_custom_response(500, "Internal server error")

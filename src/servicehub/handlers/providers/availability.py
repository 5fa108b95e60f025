import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError
from pydantic import ValidationError

from servicehub.common.repository.booking_repo import BookingRepository
from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.repository.user_repo import UserRepository
from servicehub.common.schemas.bookings import AvailabilityQuery
from servicehub.common.schemas.providers import WorkingHoursRequest, working_hours_view
from servicehub.common.services.booking_service import BookingService
from servicehub.common.services.provider_service import ProviderService
from servicehub.common.utils.custom_exceptions import BookingError
from servicehub.common.utils.custom_response import (
    send_custom_response,
    send_error_response,
    send_validation_error,
)
from servicehub.common.utils.identity import caller_from_event, json_body, query_params

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME")
AWS_REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(TABLE_NAME)

provider_repo = ProviderRepository(table)
booking_service = BookingService(
    booking_repo=BookingRepository(table),
    provider_repo=provider_repo,
    user_repo=UserRepository(table),
)
provider_service = ProviderService(provider_repo)


def check_availability(event, context):
    try:
        caller_from_event(event)
        params = query_params(event)
        params.update((event.get("pathParameters") or {}))
        query = AvailabilityQuery.model_validate(params)

        result = booking_service.check_provider_availability(
            query.provider_id, query.day, query.duration
        )
        message = "Available slots retrieved" if result["available"] else "No available slots"
        return send_custom_response(200, message, result)

    except ValidationError as err:
        return send_validation_error(err)

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error checking availability: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error checking availability")
        return send_custom_response(500, "Internal server error")


def toggle_availability(event, context):
    try:
        result = provider_service.toggle_availability(caller_from_event(event))
        return send_custom_response(200, result["message"], result)

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error toggling availability: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error toggling availability")
        return send_custom_response(500, "Internal server error")


def update_working_hours(event, context):
    try:
        caller = caller_from_event(event)
        request_body = WorkingHoursRequest.model_validate(json_body(event))

        schedule = provider_service.update_working_hours(caller, request_body.to_domain())
        return send_custom_response(
            200,
            "Working hours updated successfully",
            {"working_hours": working_hours_view(schedule)},
        )

    except ValidationError as err:
        return send_validation_error(err)

    except BookingError as err:
        return send_error_response(err)

    except ClientError as err:
        logger.error(f"DynamoDB error updating working hours: {err}")
        return send_custom_response(500, "Internal server error")

    except Exception:
        logger.exception("Unhandled error updating working hours")
        return send_custom_response(500, "Internal server error")

import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError

from servicehub.common.repository.provider_repo import ProviderRepository
from servicehub.common.services.availability_scheduler import AvailabilityScheduler
from servicehub.common.services.schedule_service import SchedulerService
from servicehub.common.utils.constants import DEFAULT_LOCAL_TIMEZONE

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME")
AWS_REGION = os.environ.get("AWS_REGION", "ap-south-1")
LOCAL_TIMEZONE = os.environ.get("LOCAL_TIMEZONE", DEFAULT_LOCAL_TIMEZONE)
SCHEDULER_ROLE_ARN = os.environ.get("SCHEDULER_ROLE_ARN")
EXPIRE_BOOKING_LAMBDA_ARN = os.environ.get("EXPIRE_BOOKING_LAMBDA_ARN")
RECONCILE_LAMBDA_ARN = os.environ.get("RECONCILE_LAMBDA_ARN")
DAILY_RESET_LAMBDA_ARN = os.environ.get("DAILY_RESET_LAMBDA_ARN")

dynamodb = resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(TABLE_NAME)

availability_scheduler = AvailabilityScheduler(ProviderRepository(table))


def reconcile_availability(event, context):
    try:
        changed = availability_scheduler.reconcile()
    except ClientError as err:
        logger.error(f"Hourly availability reconciliation failed: {err}")
        raise
    return {"updated": changed, "count": len(changed)}


def reset_daily_availability(event, context):
    try:
        changed = availability_scheduler.reset_for_new_day()
    except ClientError as err:
        logger.error(f"Daily availability reset failed: {err}")
        raise
    return {"updated": changed, "count": len(changed)}


def register_schedules(event, context):
    """Deployment hook that creates or updates both recurring availability jobs."""
    if not (SCHEDULER_ROLE_ARN and RECONCILE_LAMBDA_ARN and DAILY_RESET_LAMBDA_ARN):
        raise KeyError(
            "SCHEDULER_ROLE_ARN, RECONCILE_LAMBDA_ARN and DAILY_RESET_LAMBDA_ARN must be set"
        )

    scheduler_service = SchedulerService(
        EXPIRE_BOOKING_LAMBDA_ARN, SCHEDULER_ROLE_ARN, region=AWS_REGION
    )
    scheduler_service.register_availability_schedules(
        RECONCILE_LAMBDA_ARN, DAILY_RESET_LAMBDA_ARN, LOCAL_TIMEZONE
    )
    return {"registered": True, "timezone": LOCAL_TIMEZONE}

import boto3
from datetime import timezone, datetime
import json
import logging

from servicehub.common.utils.constants import DEFAULT_LOCAL_TIMEZONE

logger = logging.getLogger(__name__)

HOURLY_RECONCILE_CRON = "cron(0 * * * ? *)"
DAILY_RESET_CRON = "cron(0 0 * * ? *)"

RECONCILE_SCHEDULE = "provider-availability-hourly"
DAILY_RESET_SCHEDULE = "provider-availability-daily-reset"


class SchedulerService:
    def __init__(self, lambda_arn: str, role_arn: str, region="ap-south-1"):
        self.client = boto3.client("scheduler", region_name=region)
        self.lambda_arn = lambda_arn
        self.role_arn = role_arn

    def schedule_booking_expiry(self, booking_id: str, expires_at: datetime):
        schedule_name = f"expire-{booking_id}"

        try:
            schedule_expression = self._to_at_expression(expires_at)
        except ValueError as e:
            logger.error(f"Invalid time format: {e}")
            raise e

        schedule_params = {
            "Name": schedule_name,
            "ScheduleExpression": schedule_expression,
            "ScheduleExpressionTimezone": "UTC",
            "FlexibleTimeWindow": {"Mode": "OFF"},
            "Target": {
                "Arn": self.lambda_arn,
                "RoleArn": self.role_arn,
                "Input": json.dumps({"booking_id": booking_id}),
            },
            "ActionAfterCompletion": "DELETE",
        }

        self._create_or_update(schedule_params, client_token=booking_id)
        logger.info(f"Scheduled expiry for {booking_id} at {schedule_expression}")
        return True

    def ensure_recurring_schedule(
        self,
        name: str,
        cron_expression: str,
        target_arn: str,
        local_timezone: str = DEFAULT_LOCAL_TIMEZONE,
    ):
        schedule_params = {
            "Name": name,
            "ScheduleExpression": cron_expression,
            "ScheduleExpressionTimezone": local_timezone,
            "FlexibleTimeWindow": {"Mode": "OFF"},
            "Target": {
                "Arn": target_arn,
                "RoleArn": self.role_arn,
                "Input": json.dumps({"schedule": name}),
            },
        }

        self._create_or_update(schedule_params)
        logger.info(f"Recurring schedule {name} set to {cron_expression} ({local_timezone})")
        return True

    def register_availability_schedules(
        self,
        reconcile_arn: str,
        daily_reset_arn: str,
        local_timezone: str = DEFAULT_LOCAL_TIMEZONE,
    ):
        self.ensure_recurring_schedule(
            RECONCILE_SCHEDULE, HOURLY_RECONCILE_CRON, reconcile_arn, local_timezone
        )
        self.ensure_recurring_schedule(
            DAILY_RESET_SCHEDULE, DAILY_RESET_CRON, daily_reset_arn, local_timezone
        )

    def _create_or_update(self, schedule_params: dict, client_token: str = None):
        create_params = dict(schedule_params)
        if client_token:
            create_params["ClientToken"] = client_token

        try:
            self.client.create_schedule(**create_params)

        except self.client.exceptions.ConflictException:
            logger.info(f"Schedule {schedule_params['Name']} exists. Updating it.")
            self.client.update_schedule(**schedule_params)

        except Exception as e:
            logger.exception(f"Failed to create schedule {schedule_params['Name']}")
            raise e

    def _to_at_expression(self, dt: datetime) -> str:
        if isinstance(dt, str):
            dt = datetime.fromisoformat(dt)

        if dt.tzinfo is None:
            raise ValueError("schedule time must be timezone-aware")

        utc_dt = dt.astimezone(timezone.utc)
        return f"at({utc_dt.strftime('%Y-%m-%dT%H:%M:%S')})"

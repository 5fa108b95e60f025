from botocore.exceptions import ClientError
import logging
from typing import Optional, List
from boto3.dynamodb.conditions import Attr

from servicehub.common.models.providers import DayHours, Provider
from servicehub.common.models.users import GeoPoint
from servicehub.common.utils.custom_exceptions import NotFoundException
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object


logger = logging.getLogger(__name__)


class ProviderRepository:
    def __init__(self, table: Table):
        self.table = table

    def get_by_id(self, provider_id: str) -> Optional[Provider]:
        try:
            response = self.table.get_item(
                Key={"pk": f"PROVIDER#{provider_id}", "sk": "DETAILS"},
                ConsistentRead=True,
            )
        except ClientError as err:
            logger.error(f"Error retrieving provider {provider_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self._to_domain(item)

    def list_providers(self) -> List[Provider]:
        scan_kwargs = {
            "FilterExpression": Attr("pk").begins_with("PROVIDER#")
            & Attr("sk").eq("DETAILS")
        }
        providers = []
        try:
            resp = self.table.scan(**scan_kwargs)
            providers.extend(self._to_domain(i) for i in resp.get("Items", []))
            while "LastEvaluatedKey" in resp:
                resp = self.table.scan(
                    ExclusiveStartKey=resp["LastEvaluatedKey"], **scan_kwargs
                )
                providers.extend(self._to_domain(i) for i in resp.get("Items", []))
        except ClientError as err:
            logger.error(f"Error listing providers: {err}")
            raise
        return providers

    def set_availability(self, provider_id: str, is_available: bool):
        self._update(
            provider_id,
            UpdateExpression="SET #attribute = :value",
            ExpressionAttributeNames={"#attribute": "is_available"},
            ExpressionAttributeValues={":value": is_available},
        )

    def set_working_hours(self, provider_id: str, working_hours: dict[str, Optional[DayHours]]):
        """Replaces the provider's whole weekly schedule. Days left out become days off."""
        hours_item = {
            day: (
                None
                if hours is None
                else {"start": hours.start, "end": hours.end, "available": hours.available}
            )
            for day, hours in working_hours.items()
        }
        self._update(
            provider_id,
            UpdateExpression="SET #attribute = :value",
            ExpressionAttributeNames={"#attribute": "working_hours"},
            ExpressionAttributeValues={":value": hours_item},
        )

    def increment_completed_jobs(self, provider_id: str):
        self._update(
            provider_id,
            UpdateExpression="ADD #attribute :one",
            ExpressionAttributeNames={"#attribute": "completed_jobs"},
            ExpressionAttributeValues={":one": 1},
        )

    def _update(self, provider_id: str, **update_kwargs):
        try:
            self.table.update_item(
                Key={"pk": f"PROVIDER#{provider_id}", "sk": "DETAILS"},
                ConditionExpression="attribute_exists(pk)",
                **update_kwargs,
            )
        except ClientError as err:
            if (
                err.response.get("Error", {}).get("Code")
                == "ConditionalCheckFailedException"
            ):
                raise NotFoundException("provider", provider_id)
            logger.error(f"Error updating provider {provider_id}: {err}")
            raise

    @staticmethod
    def _to_domain(item: dict) -> Provider:
        working_hours = {}
        for day, hours in (item.get("working_hours") or {}).items():
            if not hours:
                working_hours[day] = None
                continue
            working_hours[day] = DayHours(
                start=hours.get("start", ""),
                end=hours.get("end", ""),
                available=bool(hours.get("available", False)),
            )

        return Provider(
            provider_id=item["pk"].split("#", 1)[1],
            name=item["name"],
            business_name=item.get("business_name"),
            phone=item["phone"],
            email=item["email"],
            location=GeoPoint(float(item["latitude"]), float(item["longitude"])),
            working_hours=working_hours,
            is_available=bool(item.get("is_available", True)),
            is_active=bool(item.get("is_active", True)),
            is_banned=bool(item.get("is_banned", False)),
            completed_jobs=int(item.get("completed_jobs", 0)),
        )

from botocore.exceptions import ClientError
import logging
from typing import Optional

from servicehub.common.models.users import GeoPoint, User, UserRole
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object

logger = logging.getLogger(__name__)


class UserRepository:
    def __init__(self, table: Table):
        self.table = table

    def get_by_id(self, user_id: str) -> Optional[User]:
        try:
            response = self.table.get_item(
                Key={"pk": f"USER#{user_id}", "sk": "DETAILS"}
            )
        except ClientError as err:
            logger.error(f"Error retrieving user by id {user_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None

        return self._to_domain(item=item)

    @staticmethod
    def _to_domain(item: dict) -> User:
        location = None
        if item.get("latitude") is not None and item.get("longitude") is not None:
            location = GeoPoint(float(item["latitude"]), float(item["longitude"]))

        return User(
            user_id=item["pk"].split("#", 1)[1],
            name=item.get("name", ""),
            email=item["email"],
            phone_number=item.get("phone_number"),
            role=UserRole(item.get("role", UserRole.CUSTOMER.value)),
            is_active=bool(item.get("is_active", True)),
            location=location,
        )

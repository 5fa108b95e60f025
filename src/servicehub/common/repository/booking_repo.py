from botocore.exceptions import ClientError
import logging
from typing import Iterable, Optional, List
from boto3.dynamodb.conditions import Attr, Key
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from servicehub.common.models.bookings import (
    AdditionalCharge,
    Address,
    Booking,
    BookingStatus,
    Cancellation,
    CancelledBy,
    Completion,
    CompletionOTP,
    Notes,
    PaymentStatus,
    Pricing,
    ServiceRef,
    TimelineEntry,
)
from servicehub.common.models.users import GeoPoint
from servicehub.common.utils.custom_exceptions import ConcurrentModification
from servicehub.common.utils.datetime_normaliser import (
    from_iso_string,
    optional_from_iso,
    to_iso,
)
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)


def _num(value: float) -> Decimal:
    return Decimal(str(value))


class BookingRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    def add_booking(self, booking: Booking):
        attributes = self._to_item(booking)

        try:
            self.client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": {
                                "pk": f"BOOKING#{booking.booking_id}",
                                "sk": "DETAILS",
                                **attributes,
                            },
                            "ConditionExpression": "attribute_not_exists(pk)",
                        }
                    },
                    *self._index_puts(booking, attributes),
                ]
            )
        except ClientError as err:
            logger.error(f"Error creating booking {booking.booking_id}: {err}")
            raise

    def save_booking(self, booking: Booking, expected_version: int) -> Booking:
        """Writes ``booking`` only if the stored copy is still at ``expected_version``.

        Returns the booking as stored, with its version bumped.
        """
        saved = replace(booking, version=expected_version + 1)
        attributes = self._to_item(saved)

        try:
            self.client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": {
                                "pk": f"BOOKING#{booking.booking_id}",
                                "sk": "DETAILS",
                                **attributes,
                            },
                            "ConditionExpression": "#version = :expected",
                            "ExpressionAttributeNames": {"#version": "version"},
                            "ExpressionAttributeValues": {
                                ":expected": expected_version,
                            },
                        }
                    },
                    *self._index_puts(saved, attributes),
                ]
            )
        except ClientError as err:
            if self._lost_condition(err):
                logger.info(
                    f"Booking {booking.booking_id} changed since version {expected_version}"
                )
                raise ConcurrentModification(booking.booking_id)
            logger.error(f"Error saving booking {booking.booking_id}: {err}")
            raise

        return saved

    def get_booking_by_id(self, booking_id: str) -> Optional[Booking]:
        try:
            response = self.table.get_item(
                Key={"pk": f"BOOKING#{booking_id}", "sk": "DETAILS"},
                ConsistentRead=True,
            )
        except ClientError as err:
            logger.error(f"Error retrieving booking {booking_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self._to_domain(item)

    def get_customer_bookings(
        self, customer_id: str, status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        filter_expression = None
        if status is not None:
            filter_expression = Attr("booking_status").eq(status.value)

        items = self._query_all(f"CUSTOMER#{customer_id}", filter_expression)
        return self._newest_first(items)

    def get_provider_bookings(
        self,
        provider_id: str,
        statuses: Optional[Iterable[BookingStatus]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        filter_expression = None
        if statuses:
            filter_expression = Attr("booking_status").is_in(
                [s.value for s in statuses]
            )
        if start is not None and end is not None:
            window = Attr("scheduled_at").between(to_iso(start), to_iso(end))
            filter_expression = (
                window if filter_expression is None else filter_expression & window
            )

        items = self._query_all(f"PROVIDER#{provider_id}", filter_expression)
        return self._newest_first(items)

    def get_expired_pending(self, now: datetime) -> List[Booking]:
        scan_kwargs = {
            "FilterExpression": (
                Attr("sk").eq("DETAILS")
                & Attr("booking_status").eq(BookingStatus.PENDING.value)
                & Attr("expires_at").lte(to_iso(now))
            )
        }
        items = []
        try:
            resp = self.table.scan(**scan_kwargs)
            items.extend(resp.get("Items", []))
            while "LastEvaluatedKey" in resp:
                resp = self.table.scan(
                    ExclusiveStartKey=resp["LastEvaluatedKey"], **scan_kwargs
                )
                items.extend(resp.get("Items", []))
        except ClientError as err:
            logger.error(f"Error scanning for expired bookings: {err}")
            raise

        return [self._to_domain(item) for item in items]

    def _query_all(self, partition: str, filter_expression=None) -> list[dict]:
        query_kwargs = {
            "KeyConditionExpression": Key("pk").eq(partition)
            & Key("sk").begins_with("BOOKING#")
        }
        if filter_expression is not None:
            query_kwargs["FilterExpression"] = filter_expression

        items = []
        try:
            resp = self.table.query(**query_kwargs)
            items.extend(resp.get("Items", []))
            while "LastEvaluatedKey" in resp:
                resp = self.table.query(
                    ExclusiveStartKey=resp["LastEvaluatedKey"], **query_kwargs
                )
                items.extend(resp.get("Items", []))
        except ClientError as err:
            logger.error(f"Error retrieving bookings for {partition}: {err}")
            raise
        return items

    def _newest_first(self, items: list[dict]) -> List[Booking]:
        bookings = [self._to_domain(item) for item in items]
        bookings.sort(key=lambda b: b.created_at, reverse=True)
        return bookings

    def _index_puts(self, booking: Booking, attributes: dict) -> list[dict]:
        return [
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": {
                        "pk": f"CUSTOMER#{booking.customer_id}",
                        "sk": f"BOOKING#{booking.booking_id}",
                        **attributes,
                    },
                }
            },
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": {
                        "pk": f"PROVIDER#{booking.provider_id}",
                        "sk": f"BOOKING#{booking.booking_id}",
                        **attributes,
                    },
                }
            },
        ]

    @staticmethod
    def _lost_condition(err: ClientError) -> bool:
        if err.response.get("Error", {}).get("Code") != "TransactionCanceledException":
            return False
        reasons = err.response.get("CancellationReasons", [])
        return any(r.get("Code") == "ConditionalCheckFailed" for r in reasons)

    @staticmethod
    def _to_item(booking: Booking) -> dict:
        pricing = booking.pricing
        item = {
            "booking_id": booking.booking_id,
            "customer_id": booking.customer_id,
            "provider_id": booking.provider_id,
            "category": booking.service.category,
            "subcategory": booking.service.subcategory,
            "scheduled_at": to_iso(booking.scheduled_at),
            "booking_status": booking.status.value,
            "payment_status": booking.payment_status.value,
            "pricing": {
                "base_price": _num(pricing.base_price),
                "additional_charges": [
                    {"description": c.description, "amount": _num(c.amount)}
                    for c in pricing.additional_charges
                ],
                "discount": _num(pricing.discount),
                "total_amount": _num(pricing.total_amount),
                "platform_fee": _num(pricing.platform_fee),
                "provider_amount": _num(pricing.provider_amount),
            },
            "timeline": [
                {
                    "status": entry.status,
                    "timestamp": to_iso(entry.timestamp),
                    "note": entry.note,
                }
                for entry in booking.timeline
            ],
            "notes": {
                "customer": booking.notes.customer,
                "provider": booking.notes.provider,
                "admin": booking.notes.admin,
            },
            "created_at": to_iso(booking.created_at),
            "version": booking.version,
        }

        if booking.address:
            address = {
                "street": booking.address.street,
                "city": booking.address.city,
                "state": booking.address.state,
                "pincode": booking.address.pincode,
            }
            if booking.address.landmark:
                address["landmark"] = booking.address.landmark
            if booking.address.coordinates:
                address["latitude"] = _num(booking.address.coordinates.latitude)
                address["longitude"] = _num(booking.address.coordinates.longitude)
            item["address"] = address

        if booking.expires_at:
            item["expires_at"] = to_iso(booking.expires_at)

        if booking.completion_otp:
            otp = booking.completion_otp
            item["completion_otp"] = {
                "otp_hash": otp.otp_hash,
                "generated_at": to_iso(otp.generated_at),
                "expires_at": to_iso(otp.expires_at),
                "attempts": otp.attempts,
                "max_attempts": otp.max_attempts,
                "is_used": otp.is_used,
            }

        if booking.cancellation:
            cancellation = booking.cancellation
            item["cancellation"] = {
                "cancelled_by": cancellation.cancelled_by.value,
                "reason": cancellation.reason,
                "cancelled_at": to_iso(cancellation.cancelled_at),
                "refund_amount": _num(cancellation.refund_amount),
            }

        if booking.completion:
            item["completion"] = {
                "completed_at": to_iso(booking.completion.completed_at),
                "work_images": list(booking.completion.work_images),
            }

        return item

    @staticmethod
    def _to_domain(item: dict) -> Booking:
        raw_pricing = item["pricing"]
        pricing = Pricing(
            base_price=float(raw_pricing["base_price"]),
            additional_charges=tuple(
                AdditionalCharge(c["description"], float(c["amount"]))
                for c in raw_pricing.get("additional_charges", [])
            ),
            discount=float(raw_pricing.get("discount", 0)),
            total_amount=float(raw_pricing["total_amount"]),
            platform_fee=float(raw_pricing["platform_fee"]),
            provider_amount=float(raw_pricing["provider_amount"]),
        )

        address = None
        raw_address = item.get("address")
        if raw_address:
            coordinates = None
            if "latitude" in raw_address and "longitude" in raw_address:
                coordinates = GeoPoint(
                    float(raw_address["latitude"]), float(raw_address["longitude"])
                )
            address = Address(
                street=raw_address["street"],
                city=raw_address["city"],
                state=raw_address["state"],
                pincode=raw_address["pincode"],
                coordinates=coordinates,
                landmark=raw_address.get("landmark"),
            )

        completion_otp = None
        raw_otp = item.get("completion_otp")
        if raw_otp:
            completion_otp = CompletionOTP(
                otp_hash=raw_otp["otp_hash"],
                generated_at=from_iso_string(raw_otp["generated_at"]),
                expires_at=from_iso_string(raw_otp["expires_at"]),
                attempts=int(raw_otp["attempts"]),
                max_attempts=int(raw_otp["max_attempts"]),
                is_used=bool(raw_otp["is_used"]),
            )

        cancellation = None
        raw_cancellation = item.get("cancellation")
        if raw_cancellation:
            cancellation = Cancellation(
                cancelled_by=CancelledBy(raw_cancellation["cancelled_by"]),
                reason=raw_cancellation.get("reason", ""),
                cancelled_at=from_iso_string(raw_cancellation["cancelled_at"]),
                refund_amount=float(raw_cancellation.get("refund_amount", 0)),
            )

        completion = None
        raw_completion = item.get("completion")
        if raw_completion:
            completion = Completion(
                completed_at=from_iso_string(raw_completion["completed_at"]),
                work_images=tuple(raw_completion.get("work_images", [])),
            )

        raw_notes = item.get("notes", {})

        return Booking(
            booking_id=item["booking_id"],
            customer_id=item["customer_id"],
            provider_id=item["provider_id"],
            service=ServiceRef(item["category"], item["subcategory"]),
            scheduled_at=from_iso_string(item["scheduled_at"]),
            pricing=pricing,
            address=address,
            status=BookingStatus(item["booking_status"]),
            payment_status=PaymentStatus(item["payment_status"]),
            timeline=tuple(
                TimelineEntry(
                    status=entry["status"],
                    timestamp=from_iso_string(entry["timestamp"]),
                    note=entry.get("note", ""),
                )
                for entry in item.get("timeline", [])
            ),
            notes=Notes(
                customer=raw_notes.get("customer", ""),
                provider=raw_notes.get("provider", ""),
                admin=raw_notes.get("admin", ""),
            ),
            completion_otp=completion_otp,
            cancellation=cancellation,
            completion=completion,
            expires_at=optional_from_iso(item.get("expires_at")),
            created_at=from_iso_string(item["created_at"]),
            version=int(item.get("version", 0)),
        )

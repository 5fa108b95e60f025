from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from servicehub.common.models.bookings import (
    AdditionalCharge,
    Address,
    Booking,
    BookingStatus,
)
from servicehub.common.models.users import GeoPoint
from servicehub.common.utils.constants import (
    DEFAULT_SLOT_DURATION_HOURS,
    SERVICE_CATEGORIES,
    is_valid_service,
)


def _aware_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("datetime must include timezone info")
    return value.astimezone(timezone.utc)


class ServiceSelection(BaseModel):
    category: str
    subcategory: str

    @model_validator(mode="after")
    def validate_taxonomy(self):
        if self.category not in SERVICE_CATEGORIES:
            raise ValueError(f"'{self.category}' is not a valid service category")
        if not is_valid_service(self.category, self.subcategory):
            raise ValueError(
                f"'{self.subcategory}' is not a valid subcategory of '{self.category}'"
            )
        return self


class CoordinatesIn(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class AddressIn(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(min_length=1)
    coordinates: Optional[CoordinatesIn] = None
    landmark: Optional[str] = None

    def to_domain(self) -> Address:
        coordinates = None
        if self.coordinates:
            coordinates = GeoPoint(self.coordinates.latitude, self.coordinates.longitude)
        return Address(
            street=self.street,
            city=self.city,
            state=self.state,
            pincode=self.pincode,
            coordinates=coordinates,
            landmark=self.landmark,
        )


class ChargeIn(BaseModel):
    description: str
    amount: float = Field(ge=0)


class PricingIn(BaseModel):
    base_price: float = Field(ge=0)
    additional_charges: list[ChargeIn] = Field(default_factory=list)
    discount: float = Field(default=0, ge=0)

    def charges(self) -> tuple[AdditionalCharge, ...]:
        return tuple(AdditionalCharge(c.description, c.amount) for c in self.additional_charges)


class BookingRequest(BaseModel):
    provider_id: str = Field(min_length=1)
    service: ServiceSelection
    scheduled_date_time: datetime
    address: AddressIn
    pricing: PricingIn
    notes: str = ""

    @field_validator("scheduled_date_time")
    @classmethod
    def normalise_scheduled(cls, v: datetime):
        return _aware_utc(v)


class RescheduleRequest(BaseModel):
    new_date_time: datetime

    @field_validator("new_date_time")
    @classmethod
    def normalise_new_time(cls, v: datetime):
        return _aware_utc(v)


class ReasonRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class VerifyOTPRequest(BaseModel):
    otp: str = Field(min_length=1, max_length=12)
    work_images: list[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("otp", mode="before")
    @classmethod
    def otp_as_text(cls, v):
        return str(v).strip() if v is not None else v


class AvailabilityQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider_id: str = Field(min_length=1)
    day: date = Field(alias="date")
    duration: int = Field(default=DEFAULT_SLOT_DURATION_HOURS, ge=1, le=12)


class BookingListQuery(BaseModel):
    status: Optional[BookingStatus] = None
    customer_id: Optional[str] = None
    provider_id: Optional[str] = None


def booking_view(booking: Booking) -> dict:
    """Client-facing shape of a booking. The OTP hash never leaves the service."""
    view = asdict(booking)
    view.pop("version", None)
    otp = view.pop("completion_otp", None)
    view["completion_otp"] = None
    if otp:
        view["completion_otp"] = {
            "generated_at": otp["generated_at"],
            "expires_at": otp["expires_at"],
            "attempts": otp["attempts"],
            "max_attempts": otp["max_attempts"],
        }
    return view

"""
Pydantic schemas for reservation request/response validation.

The wire format is camelCase (userId, visitDate, ...); Python code uses
snake_case attribute names.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

ReservationStatus = Literal["pending", "confirmed", "cancelled", "completed"]
ReminderAction = Literal["rappler"]

# Clients send the booked amount under its event or place name
QUANTITY_ALIASES = AliasChoices("numberOfTickets", "numberOfPersons", "quantity")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReservationCreate(CamelModel):
    user_id: int = Field(..., gt=0)
    event_id: Optional[int] = Field(None, gt=0)
    place_id: Optional[int] = Field(None, gt=0)
    quantity: int = Field(default=1, ge=1, le=1000, validation_alias=QUANTITY_ALIASES)
    status: Optional[ReservationStatus] = None
    visit_date: Optional[datetime] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_id: Optional[str] = Field(None, max_length=255)


class ReservationUpdate(CamelModel):
    """Partial update. The booked entity, owner and price are not updatable."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    status: Optional[Union[ReservationStatus, ReminderAction]] = None
    quantity: Optional[int] = Field(None, ge=1, le=1000, validation_alias=QUANTITY_ALIASES)
    visit_date: Optional[datetime] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_id: Optional[str] = Field(None, max_length=255)


class ReservationResponse(CamelModel):
    id: int
    user_id: int
    event_id: Optional[int]
    place_id: Optional[int]
    quantity: int
    visit_date: datetime
    total_price: Decimal
    status: str
    payment_method: Optional[str]
    payment_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    @field_validator("visit_date", "created_at", "updated_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        # Backends without timezone support hand back naive UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_serializer("total_price")
    def serialize_total_price(self, value: Decimal) -> float:
        return float(value)


class AvailabilityResponse(BaseModel):
    available: bool
    message: str


class ReservationListItem(ReservationResponse):
    """A listed reservation with its owner's contact details, for providers."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_listing(cls, listing) -> "ReservationListItem":
        item = cls.model_validate(listing.reservation)
        return item.model_copy(
            update={"first_name": listing.first_name, "last_name": listing.last_name, "phone": listing.phone}
        )

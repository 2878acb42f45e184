"""
What a reservation books against: an event ticket pool or a place visit.

A reservation row stores event_id and place_id as two nullable columns.
Everything above the model works with a BookingTarget instead, so a
request naming both (or neither) fails to produce a target at all.
"""

from dataclasses import dataclass
from typing import Optional, Union

from tourism_api.core.exceptions import ValidationError

EVENT = "event"
PLACE = "place"
ENTITY_TYPES = (EVENT, PLACE)


@dataclass(frozen=True)
class EventTarget:
    id: int
    kind: str = EVENT

    @property
    def lock_key(self) -> str:
        return f"reservation-lock:event:{self.id}"

    def columns(self) -> dict:
        return {"event_id": self.id, "place_id": None}


@dataclass(frozen=True)
class PlaceTarget:
    id: int
    kind: str = PLACE

    @property
    def lock_key(self) -> str:
        return f"reservation-lock:place:{self.id}"

    def columns(self) -> dict:
        return {"event_id": None, "place_id": self.id}


BookingTarget = Union[EventTarget, PlaceTarget]


def target_from_ids(event_id: Optional[int], place_id: Optional[int]) -> BookingTarget:
    if event_id is not None and place_id is not None:
        raise ValidationError(
            "Provide either eventId or placeId, not both",
            errors=[{"field": "eventId", "message": "Cannot be combined with placeId"}],
        )
    if event_id is not None:
        return EventTarget(event_id)
    if place_id is not None:
        return PlaceTarget(place_id)
    raise ValidationError(
        "Either eventId or placeId must be provided",
        errors=[{"field": "eventId", "message": "Either eventId or placeId is required"}],
    )


def target_of(reservation) -> BookingTarget:
    """Target of a stored reservation row."""
    return target_from_ids(reservation.event_id, reservation.place_id)

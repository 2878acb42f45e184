from tourism_api.schemas.reservation import (
    ReservationCreate,
    ReservationUpdate,
    ReservationResponse,
    ReservationListItem,
    AvailabilityResponse,
)

__all__ = [
    "ReservationCreate", "ReservationUpdate", "ReservationResponse", "ReservationListItem", "AvailabilityResponse",
]

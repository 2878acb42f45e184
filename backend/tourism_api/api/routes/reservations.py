"""
Reservation endpoints: booking, status workflow and availability checks.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourism_api.api.deps import get_reservation_service
from tourism_api.db.session import get_db
from tourism_api.schemas.reservation import (
    AvailabilityResponse,
    ReservationCreate,
    ReservationListItem,
    ReservationResponse,
    ReservationStatus,
    ReservationUpdate,
)
from tourism_api.services.reservation_service import ReservationService
from tourism_api.services.reservation_store import ReservationFilters

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.get("/check/availability", response_model=AvailabilityResponse)
async def check_availability_endpoint(
    entity_type: str = Query(..., alias="entityType"),
    entity_id: int = Query(..., alias="entityId", gt=0),
    date: Optional[datetime] = Query(None),
    number_of_tickets: int = Query(1, alias="numberOfTickets"),
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """
    Whether an event still has `numberOfTickets` tickets, or a place is free on `date`.
    Unknown entities are reported as unavailable.
    """
    available = await service.check_availability(db, entity_type, entity_id, date, number_of_tickets)
    message = (
        f"{entity_type} is available"
        if available
        else f"{entity_type} is not available for the requested date/tickets"
    )
    return AvailabilityResponse(available=available, message=message)


@router.get("", response_model=list[ReservationListItem])
async def list_reservations_endpoint(
    user_id: Optional[int] = Query(None, alias="userId"),
    place_id: Optional[int] = Query(None, alias="placeId"),
    event_id: Optional[int] = Query(None, alias="eventId"),
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    from_date: Optional[datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime] = Query(None, alias="toDate"),
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """List reservations, newest first, with each owner's name and phone. All filters combine with AND."""
    filters = ReservationFilters(
        user_id=user_id,
        place_id=place_id,
        event_id=event_id,
        status=status_filter,
        from_date=from_date,
        to_date=to_date,
    )
    listings = await service.list_reservations(db, filters)
    return [ReservationListItem.from_listing(listing) for listing in listings]


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation_endpoint(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_reservation(db, reservation_id)


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation_endpoint(
    reservation_data: ReservationCreate,
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """
    Book an event (numberOfTickets) or a place visit (visitDate).

    Availability is re-checked inside the insert transaction, under a
    per-entity lock, so concurrent requests cannot overbook.
    """
    return await service.create_reservation(db, reservation_data)


@router.put("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation_endpoint(
    reservation_id: int,
    reservation_data: ReservationUpdate,
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """
    Partial update. `status: "confirmed"` emails a confirmation;
    `status: "rappler"` emails a visit reminder and changes nothing.
    """
    return await service.update_reservation(db, reservation_id, reservation_data)


@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reservation_endpoint(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """Hard delete, regardless of status."""
    await service.delete_reservation(db, reservation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

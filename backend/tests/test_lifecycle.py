"""
Tests for the reservation status workflow and its notifications.
"""

import asyncio
from decimal import Decimal

import pytest

from tourism_api.core.config import get_settings
from tourism_api.core.exceptions import InvalidTransitionError, NotificationError, ValidationError
from tourism_api.schemas.reservation import ReservationCreate, ReservationUpdate
from tourism_api.services.availability_service import to_utc
from tourism_api.services.interfaces.notification import NotificationGateway
from tourism_api.services.lifecycle_service import ReservationLifecycle, is_allowed
from tourism_api.services.reservation_service import ReservationService


class FailingGateway(NotificationGateway):
    def __init__(self):
        self.calls = 0

    async def send_email(self, to, subject, html):
        self.calls += 1
        raise NotificationError("SMTP relay refused connection")


class SlowGateway(NotificationGateway):
    async def send_email(self, to, subject, html):
        await asyncio.sleep(5)
        return True


@pytest.mark.parametrize("current,requested,allowed", [
    ("pending", "confirmed", True),
    ("pending", "cancelled", True),
    ("pending", "completed", False),
    ("confirmed", "completed", True),
    ("confirmed", "cancelled", True),
    ("confirmed", "pending", False),
    ("completed", "pending", False),
    ("completed", "cancelled", False),
    ("cancelled", "confirmed", False),
    ("cancelled", "cancelled", True),
])
def test_transition_table(current, requested, allowed):
    assert is_allowed(current, requested) is allowed


async def _create(service, db, user, event, **overrides):
    data = {"userId": user.id, "eventId": event.id, "numberOfTickets": 2, **overrides}
    return await service.create_reservation(db, ReservationCreate(**data))


@pytest.mark.asyncio
async def test_confirm_sends_one_confirmation(service, notifier, db_session, test_user, test_event):
    reservation = await _create(service, db_session, test_user, test_event)
    assert notifier.sent_emails == []

    updated = await service.update_reservation(db_session, reservation.id, ReservationUpdate(status="confirmed"))

    assert updated.status == "confirmed"
    assert len(notifier.sent_emails) == 1
    email = notifier.sent_emails[0]
    assert email["to"] == "visitor@example.com"
    assert "25.00" in email["html"]
    assert str(test_event.id) in email["html"]


@pytest.mark.asyncio
async def test_reminder_changes_nothing_and_notifies_once(
    service, notifier, db_session, session_factory, test_user, test_event
):
    reservation = await _create(service, db_session, test_user, test_event, status="confirmed")
    notifier.sent_emails.clear()
    updated_at = reservation.updated_at

    await service.update_reservation(db_session, reservation.id, ReservationUpdate(status="rappler"))

    async with session_factory() as fresh:
        stored = await service.get_reservation(fresh, reservation.id)
        assert stored is not reservation
        assert stored.status == "confirmed"
        assert to_utc(stored.updated_at) == to_utc(updated_at)
    assert len(notifier.sent_emails) == 1
    assert "Reminder" in notifier.sent_emails[0]["subject"]


@pytest.mark.asyncio
async def test_reminder_rejected_for_terminal_reservation(service, notifier, db_session, test_user, test_event):
    reservation = await _create(service, db_session, test_user, test_event)
    await service.update_reservation(db_session, reservation.id, ReservationUpdate(status="cancelled"))

    with pytest.raises(InvalidTransitionError):
        await service.update_reservation(db_session, reservation.id, ReservationUpdate(status="rappler"))
    assert notifier.sent_emails == []


@pytest.mark.asyncio
async def test_reminder_cannot_carry_other_changes(service, db_session, test_user, test_event):
    reservation = await _create(service, db_session, test_user, test_event)

    with pytest.raises(ValidationError):
        await service.update_reservation(
            db_session, reservation.id, ReservationUpdate(status="rappler", paymentMethod="cash")
        )


@pytest.mark.asyncio
async def test_illegal_transition_applies_nothing(service, db_session, test_user, test_event):
    reservation = await _create(service, db_session, test_user, test_event, status="confirmed")
    await service.update_reservation(db_session, reservation.id, ReservationUpdate(status="completed"))

    with pytest.raises(InvalidTransitionError):
        await service.update_reservation(
            db_session, reservation.id, ReservationUpdate(status="pending", paymentMethod="card")
        )

    stored = await service.get_reservation(db_session, reservation.id)
    assert stored.status == "completed"
    assert stored.payment_method is None


@pytest.mark.asyncio
async def test_same_status_is_a_no_op(service, notifier, db_session, test_user, test_event):
    reservation = await _create(service, db_session, test_user, test_event, status="confirmed")
    notifier.sent_emails.clear()

    updated = await service.update_reservation(
        db_session, reservation.id, ReservationUpdate(status="confirmed", paymentId="PAY-1")
    )

    assert updated.payment_id == "PAY-1"
    assert notifier.sent_emails == []


@pytest.mark.asyncio
async def test_failed_email_does_not_undo_confirmation(store, db_session, test_user, test_event):
    gateway = FailingGateway()
    service = ReservationService(store, ReservationLifecycle(store, gateway, get_settings()))
    reservation = await _create(service, db_session, test_user, test_event)

    updated = await service.update_reservation(db_session, reservation.id, ReservationUpdate(status="confirmed"))

    assert gateway.calls == 1
    assert updated.status == "confirmed"
    stored = await service.get_reservation(db_session, reservation.id)
    assert stored.status == "confirmed"


@pytest.mark.asyncio
async def test_slow_gateway_is_cut_off(store, db_session, test_user, test_event, monkeypatch):
    monkeypatch.setattr(get_settings(), "NOTIFICATION_TIMEOUT_SECONDS", 0.05)
    service = ReservationService(store, ReservationLifecycle(store, SlowGateway(), get_settings()))
    reservation = await _create(service, db_session, test_user, test_event)

    updated = await asyncio.wait_for(
        service.update_reservation(db_session, reservation.id, ReservationUpdate(status="confirmed")),
        timeout=2,
    )

    assert updated.status == "confirmed"


@pytest.mark.asyncio
async def test_created_confirmed_sends_confirmation(service, notifier, db_session, test_user, test_event):
    reservation = await _create(service, db_session, test_user, test_event, status="confirmed")

    assert reservation.status == "confirmed"
    assert len(notifier.sent_emails) == 1


@pytest.mark.asyncio
async def test_cannot_create_in_terminal_status(service, db_session, test_user, test_event):
    with pytest.raises(ValidationError):
        await _create(service, db_session, test_user, test_event, status="completed")


@pytest.mark.asyncio
async def test_update_never_recomputes_price(service, db_session, test_user, test_event):
    reservation = await _create(service, db_session, test_user, test_event)
    assert reservation.total_price == Decimal("25.00")

    updated = await service.update_reservation(db_session, reservation.id, ReservationUpdate(numberOfTickets=3))

    assert updated.quantity == 3
    assert updated.total_price == Decimal("25.00")
    assert to_utc(updated.updated_at) >= to_utc(updated.created_at)


@pytest.mark.asyncio
async def test_place_confirmation_lists_persons(service, notifier, db_session, test_user, test_place):
    data = ReservationCreate(userId=test_user.id, placeId=test_place.id, visitDate="2024-06-01", numberOfPersons=3)
    reservation = await service.create_reservation(db_session, data)

    await service.update_reservation(db_session, reservation.id, ReservationUpdate(status="confirmed"))

    html = notifier.sent_emails[0]["html"]
    assert "Number of persons:</strong> 3" in html
    assert "30.00" in html
    assert "Event:" not in html


@pytest.mark.asyncio
async def test_event_confirmation_lists_tickets(service, notifier, db_session, test_user, test_event):
    reservation = await _create(service, db_session, test_user, test_event, numberOfTickets=2, status="confirmed")

    html = notifier.sent_emails[0]["html"]
    assert "Number of tickets:</strong> 2" in html
    assert f"Event:</strong> {test_event.id}" in html
    assert reservation.status == "confirmed"


@pytest.mark.asyncio
async def test_transition_judged_on_committed_status(service, session_factory, db_session, test_user, test_event):
    """A status read before another request cancelled the reservation cannot be used to confirm it."""
    reservation = await _create(service, db_session, test_user, test_event)

    async with session_factory() as stale:
        stale_copy = await service.get_reservation(stale, reservation.id)
        assert stale_copy.status == "pending"

        async with session_factory() as other:
            await service.update_reservation(other, reservation.id, ReservationUpdate(status="cancelled"))

        with pytest.raises(InvalidTransitionError):
            await service.update_reservation(stale, reservation.id, ReservationUpdate(status="confirmed"))

    async with session_factory() as fresh:
        assert (await service.get_reservation(fresh, reservation.id)).status == "cancelled"

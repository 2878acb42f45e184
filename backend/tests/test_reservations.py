"""
Tests for the reservation HTTP endpoints.
"""

import pytest

BASE = "/api/v1/reservations"


async def _book_event(client, user, event, tickets=2, **extra):
    return await client.post(BASE, json={
        "userId": user.id,
        "eventId": event.id,
        "numberOfTickets": tickets,
        **extra,
    })


async def _count(client) -> int:
    response = await client.get(BASE)
    assert response.status_code == 200
    return len(response.json())


@pytest.mark.asyncio
async def test_book_event_tickets(client, test_user, test_event):
    response = await _book_event(client, test_user, test_event, tickets=2)

    assert response.status_code == 201
    data = response.json()
    assert data["eventId"] == test_event.id
    assert data["placeId"] is None
    assert data["quantity"] == 2
    assert data["totalPrice"] == 25.0
    assert data["status"] == "pending"
    assert "createdAt" in data and "updatedAt" in data


@pytest.mark.asyncio
async def test_book_place_once_per_day(client, test_user, test_place):
    payload = {"userId": test_user.id, "placeId": test_place.id, "visitDate": "2024-06-01", "numberOfPersons": 2}

    first = await client.post(BASE, json=payload)
    assert first.status_code == 201
    assert first.json()["totalPrice"] == 20.0
    assert first.json()["visitDate"].startswith("2024-06-01")

    second = await client.post(BASE, json=payload)
    assert second.status_code == 400
    assert second.json()["detail"] == "Place not available for this date"
    assert await _count(client) == 1


@pytest.mark.asyncio
async def test_place_with_malformed_fee_uses_default(client, test_user, malformed_fee_place):
    response = await client.post(BASE, json={
        "userId": test_user.id,
        "placeId": malformed_fee_place.id,
        "visitDate": "2024-07-14T09:00:00Z",
        "quantity": 3,
    })

    assert response.status_code == 201
    assert response.json()["totalPrice"] == 30.0


@pytest.mark.asyncio
async def test_free_event_costs_nothing(client, test_user, free_event):
    response = await _book_event(client, test_user, free_event, tickets=4)

    assert response.status_code == 201
    assert response.json()["totalPrice"] == 0.0


@pytest.mark.asyncio
async def test_overbooking_rejected_and_nothing_written(client, test_user, test_event):
    assert (await _book_event(client, test_user, test_event, tickets=4)).status_code == 201

    response = await _book_event(client, test_user, test_event, tickets=2)

    assert response.status_code == 400
    assert response.json()["detail"] == "Not enough tickets available"
    assert await _count(client) == 1


@pytest.mark.asyncio
async def test_cancelled_tickets_are_released(client, test_user, test_event):
    booked = await _book_event(client, test_user, test_event, tickets=5)
    await client.put(f"{BASE}/{booked.json()['id']}", json={"status": "cancelled"})

    response = await _book_event(client, test_user, test_event, tickets=5)

    assert response.status_code == 201


@pytest.mark.asyncio
async def test_target_must_be_exactly_one(client, test_user, test_event, test_place):
    both = await client.post(BASE, json={"userId": test_user.id, "eventId": test_event.id, "placeId": test_place.id})
    neither = await client.post(BASE, json={"userId": test_user.id, "quantity": 1})

    assert both.status_code == 400
    assert neither.status_code == 400
    assert await _count(client) == 0


@pytest.mark.asyncio
async def test_zero_tickets_rejected(client, test_user, test_event):
    response = await _book_event(client, test_user, test_event, tickets=0)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_references_are_not_found(client, test_user, test_event):
    missing_event = await client.post(BASE, json={"userId": test_user.id, "eventId": 9999})
    missing_place = await client.post(BASE, json={"userId": test_user.id, "placeId": 9999, "visitDate": "2024-06-01"})
    missing_user = await client.post(BASE, json={"userId": 9999, "eventId": test_event.id})

    assert missing_event.status_code == 404
    assert missing_event.json()["detail"] == "Event not found"
    assert missing_place.status_code == 404
    assert missing_place.json()["detail"] == "Place not found"
    assert missing_user.status_code == 404
    assert missing_user.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_create_confirmed_sends_confirmation(client, notifier, test_user, test_event):
    response = await _book_event(client, test_user, test_event, status="confirmed")

    assert response.status_code == 201
    assert response.json()["status"] == "confirmed"
    assert [email["to"] for email in notifier.sent_emails] == ["visitor@example.com"]


@pytest.mark.asyncio
async def test_create_in_terminal_status_rejected(client, test_user, test_event):
    response = await _book_event(client, test_user, test_event, status="cancelled")

    assert response.status_code == 400
    assert await _count(client) == 0


@pytest.mark.asyncio
async def test_get_reservation(client, test_user, test_event):
    created = (await _book_event(client, test_user, test_event)).json()

    first = await client.get(f"{BASE}/{created['id']}")
    second = await client.get(f"{BASE}/{created['id']}")

    assert first.status_code == 200
    assert first.json() == second.json()
    assert first.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_get_missing_reservation(client):
    response = await client.get(f"{BASE}/424242")

    assert response.status_code == 404
    assert response.json()["detail"] == "Reservation not found"


@pytest.mark.asyncio
async def test_list_filters_and_order(client, test_user, test_event, test_place):
    event_booking = (await _book_event(client, test_user, test_event, tickets=1)).json()
    place_booking = (await client.post(BASE, json={
        "userId": test_user.id, "placeId": test_place.id, "visitDate": "2024-06-01",
    })).json()
    await client.put(f"{BASE}/{place_booking['id']}", json={"status": "confirmed"})

    everything = (await client.get(BASE)).json()
    assert [r["id"] for r in everything] == [place_booking["id"], event_booking["id"]]

    by_event = (await client.get(BASE, params={"eventId": test_event.id})).json()
    assert [r["id"] for r in by_event] == [event_booking["id"]]

    by_place = (await client.get(BASE, params={"placeId": test_place.id})).json()
    assert [r["id"] for r in by_place] == [place_booking["id"]]

    confirmed = (await client.get(BASE, params={"status": "confirmed", "userId": test_user.id})).json()
    assert [r["id"] for r in confirmed] == [place_booking["id"]]

    other_user = (await client.get(BASE, params={"userId": test_user.id + 1})).json()
    assert other_user == []


@pytest.mark.asyncio
async def test_list_rejects_unknown_status(client):
    response = await client.get(BASE, params={"status": "archived"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_confirm_over_http_emails_owner(client, notifier, test_user, test_event):
    created = (await _book_event(client, test_user, test_event)).json()

    response = await client.put(f"{BASE}/{created['id']}", json={"status": "confirmed"})

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert response.json()["totalPrice"] == created["totalPrice"]
    assert len(notifier.sent_emails) == 1
    assert notifier.sent_emails[0]["subject"] == "Your reservation is confirmed"


@pytest.mark.asyncio
async def test_reminder_over_http(client, notifier, test_user, test_event):
    created = (await _book_event(client, test_user, test_event)).json()

    response = await client.put(f"{BASE}/{created['id']}", json={"status": "rappler"})

    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert len(notifier.sent_emails) == 1
    stored = (await client.get(f"{BASE}/{created['id']}")).json()
    assert stored["status"] == "pending"
    assert stored["updatedAt"] == created["updatedAt"]


@pytest.mark.asyncio
async def test_illegal_transition_over_http(client, test_user, test_event):
    created = (await _book_event(client, test_user, test_event)).json()

    response = await client.put(f"{BASE}/{created['id']}", json={"status": "completed"})

    assert response.status_code == 400
    assert "pending" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.parametrize("field,value", [
    ("eventId", 1),
    ("placeId", 1),
    ("userId", 2),
    ("totalPrice", 1.0),
])
async def test_immutable_fields_rejected(client, test_user, test_event, field, value):
    created = (await _book_event(client, test_user, test_event)).json()

    response = await client.put(f"{BASE}/{created['id']}", json={field: value})

    assert response.status_code == 400
    stored = (await client.get(f"{BASE}/{created['id']}")).json()
    assert stored == created


@pytest.mark.asyncio
async def test_update_missing_reservation(client):
    response = await client.put(f"{BASE}/424242", json={"status": "confirmed"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_quantity_increase_respects_capacity(client, test_user, test_event):
    first = (await _book_event(client, test_user, test_event, tickets=2)).json()
    await _book_event(client, test_user, test_event, tickets=2)

    too_many = await client.put(f"{BASE}/{first['id']}", json={"numberOfTickets": 4})
    fits = await client.put(f"{BASE}/{first['id']}", json={"numberOfTickets": 3})

    assert too_many.status_code == 400
    assert too_many.json()["detail"] == "Not enough tickets available"
    assert fits.status_code == 200
    assert fits.json()["quantity"] == 3


@pytest.mark.asyncio
async def test_delete_reservation(client, test_user, test_event):
    created = (await _book_event(client, test_user, test_event)).json()

    response = await client.delete(f"{BASE}/{created['id']}")

    assert response.status_code == 204
    assert (await client.get(f"{BASE}/{created['id']}")).status_code == 404
    assert (await client.delete(f"{BASE}/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_check_event_availability(client, test_user, test_event):
    await _book_event(client, test_user, test_event, tickets=4)

    ok = await client.get(f"{BASE}/check/availability", params={
        "entityType": "event", "entityId": test_event.id, "numberOfTickets": 1,
    })
    full = await client.get(f"{BASE}/check/availability", params={
        "entityType": "event", "entityId": test_event.id, "numberOfTickets": 2,
    })

    assert ok.status_code == 200
    assert ok.json()["available"] is True
    assert full.json()["available"] is False


@pytest.mark.asyncio
async def test_check_place_availability(client, test_user, test_place):
    await client.post(BASE, json={"userId": test_user.id, "placeId": test_place.id, "visitDate": "2024-06-01"})

    taken = await client.get(f"{BASE}/check/availability", params={
        "entityType": "place", "entityId": test_place.id, "date": "2024-06-01T15:00:00Z",
    })
    free = await client.get(f"{BASE}/check/availability", params={
        "entityType": "place", "entityId": test_place.id, "date": "2024-06-02T15:00:00Z",
    })
    unknown = await client.get(f"{BASE}/check/availability", params={
        "entityType": "place", "entityId": 9999, "date": "2024-06-02T15:00:00Z",
    })

    assert taken.json()["available"] is False
    assert free.json()["available"] is True
    assert unknown.status_code == 200
    assert unknown.json()["available"] is False


@pytest.mark.asyncio
async def test_check_availability_bad_arguments(client, test_place):
    no_date = await client.get(f"{BASE}/check/availability", params={
        "entityType": "place", "entityId": test_place.id,
    })
    bad_type = await client.get(f"{BASE}/check/availability", params={
        "entityType": "museum", "entityId": test_place.id,
    })

    assert no_date.status_code == 400
    assert bad_type.status_code == 400


@pytest.mark.asyncio
async def test_request_id_echoed(client):
    response = await client.get(BASE, headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "ok"


@pytest.mark.asyncio
async def test_list_includes_owner_contact(client, test_user, test_event):
    created = (await _book_event(client, test_user, test_event)).json()

    listed = (await client.get(BASE)).json()

    assert len(listed) == 1
    assert listed[0]["id"] == created["id"]
    assert listed[0]["firstName"] == "Amira"
    assert listed[0]["lastName"] == "Ben Salah"
    assert listed[0]["phone"] == "+21620000000"
    assert "firstName" not in created

"""
Locust Load Test Suite

The reservations API does not create users, events or places, so seed them
first and point the run at them:

  LOAD_USER_ID=1 LOAD_EVENT_ID=1 LOAD_PLACE_ID=1 locust -f locustfile.py ...

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags read         # Test listing and availability checks
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events

BASE = "/api/v1/reservations"

USER_ID = int(os.getenv("LOAD_USER_ID", "1"))
EVENT_ID = int(os.getenv("LOAD_EVENT_ID", "1"))
PLACE_ID = int(os.getenv("LOAD_PLACE_ID", "1"))

# Shared state
RESERVATION_IDS = []


def random_visit_date():
    return (date.today() + timedelta(days=random.randint(1, 365))).isoformat()


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Target: user={USER_ID} event={EVENT_ID} place={PLACE_ID}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - everyone books the same event and the same place day

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(quantity) FROM reservations WHERE event_id = X AND status <> 'cancelled';
    Should be <= the event's capacity, and
      SELECT visit_date::date, COUNT(*) FROM reservations WHERE place_id = Y GROUP BY 1;
    Should never exceed PLACE_MAX_BOOKINGS_PER_DAY.
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task(3)
    def book_event_tickets(self):
        with self.client.post(BASE,
            json={"userId": USER_ID, "eventId": EVENT_ID, "numberOfTickets": 1},
            catch_response=True,
            name=f"{BASE} [event]"
        ) as resp:
            if resp.status_code == 201:
                RESERVATION_IDS.append(resp.json()["id"])
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Expected: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task(1)
    def book_place_visit(self):
        with self.client.post(BASE,
            json={"userId": USER_ID, "placeId": PLACE_ID, "visitDate": "2030-01-01"},
            catch_response=True,
            name=f"{BASE} [place]"
        ) as resp:
            if resp.status_code in [201, 400]:
                resp.success()  # 400: day already taken
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ReadUser(HttpUser):
    """
    TEST 2: Read throughput - listings and availability checks

    Run: locust -f locustfile.py --tags read -u 100 -r 20 --run-time 60s

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("read")
    @task(5)
    def list_user_reservations(self):
        self.client.get(f"{BASE}?userId={USER_ID}", name=f"{BASE}?userId")

    @tag("read")
    @task(5)
    def check_event(self):
        self.client.get(f"{BASE}/check/availability",
            params={"entityType": "event", "entityId": EVENT_ID, "numberOfTickets": random.randint(1, 3)},
            name=f"{BASE}/check/availability [event]")

    @tag("read")
    @task(5)
    def check_place(self):
        self.client.get(f"{BASE}/check/availability",
            params={"entityType": "place", "entityId": PLACE_ID, "date": random_visit_date()},
            name=f"{BASE}/check/availability [place]")

    @tag("read")
    @task(2)
    def get_reservation(self):
        if RESERVATION_IDS:
            self.client.get(f"{BASE}/{random.choice(RESERVATION_IDS)}", name=f"{BASE}/{{id}}")

    @tag("read")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        with self.client.post(BASE,
            json={"userId": USER_ID, "eventId": 999999, "numberOfTickets": 1},
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def both_targets(self):
        with self.client.post(BASE,
            json={"userId": USER_ID, "eventId": EVENT_ID, "placeId": PLACE_ID},
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def zero_tickets(self):
        with self.client.post(BASE,
            json={"userId": USER_ID, "eventId": EVENT_ID, "numberOfTickets": 0},
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def huge_tickets(self):
        with self.client.post(BASE,
            json={"userId": USER_ID, "eventId": EVENT_ID, "numberOfTickets": 999999},
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(BASE,
            data="not json at all",
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def unknown_status(self):
        with self.client.put(f"{BASE}/1",
            json={"status": "archived"},
            catch_response=True,
            name=f"{BASE}/{{id}} [bad status]"
        ) as resp:
            self._expect(resp, [400])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing and availability checks
      - Some bookings
      - Rare confirmations, reminders and cancellations
    """
    wait_time = between(1, 3)

    @task(40)
    def browse(self):
        self.client.get(f"{BASE}?userId={USER_ID}", name=f"{BASE}?userId")

    @task(20)
    def check_place(self):
        self.client.get(f"{BASE}/check/availability",
            params={"entityType": "place", "entityId": PLACE_ID, "date": random_visit_date()},
            name=f"{BASE}/check/availability [place]")

    @task(10)
    def book_place(self):
        resp = self.client.post(BASE,
            json={"userId": USER_ID, "placeId": PLACE_ID, "visitDate": random_visit_date(),
                  "numberOfPersons": random.randint(1, 4)},
            name=f"{BASE} [place]")
        if resp.status_code == 201:
            RESERVATION_IDS.append(resp.json()["id"])

    @task(3)
    def change_status(self):
        if RESERVATION_IDS:
            reservation_id = random.choice(RESERVATION_IDS)
            self.client.put(f"{BASE}/{reservation_id}",
                json={"status": random.choice(["confirmed", "rappler", "cancelled"])},
                name=f"{BASE}/{{id}} [status]")

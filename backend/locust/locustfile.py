"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention   # Many exhibitors, few booths
  locust -f locustfile.py --tags throughput   # Cached event listing
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

Events and booths can only be created by an admin. Point the suite at one:
  LOCUST_ADMIN_EMAIL=admin@example.com LOCUST_ADMIN_PASSWORD=... locust -f locustfile.py
"""

import os
import random
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

ADMIN_EMAIL = os.getenv("LOCUST_ADMIN_EMAIL", "admin@boothhub.local")
ADMIN_PASSWORD = os.getenv("LOCUST_ADMIN_PASSWORD", "admin-password")
CONTENTION_BOOTHS = int(os.getenv("LOCUST_CONTENTION_BOOTHS", "10"))
PASSWORD = "load-test-pass"

# Shared state
EVENT_IDS = []
CONTENTION_EVENT_ID = None
CONTENTION_BOOTH_IDS = []


def random_email():
    return f"load_{random.randint(100000, 999999)}@test.com"


def register_and_login(client):
    """Register a throwaway exhibitor and return auth headers (empty on failure)."""
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "password": PASSWORD,
        "firstName": "Load",
        "lastName": "Tester",
        "companyName": "Load Co",
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['data']['accessToken']}"}
    return {}


def admin_headers(client):
    resp = client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['data']['accessToken']}"}
    return {}


def create_event(client, headers, name):
    start = datetime.now(timezone.utc) + timedelta(days=random.randint(10, 90))
    resp = client.post("/api/v1/events", json={
        "name": name,
        "description": "Load test event",
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=3)).isoformat(),
        "venue": "Hall A",
        "status": "published",
    }, headers=headers)
    if resp.status_code == 201:
        return resp.json()["data"]["id"]
    return None


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: contention event with {CONTENTION_BOOTHS} booths is created by the first user")
    print("=" * 60)


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - 100 exhibitors -> 10 booths

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify no booth has two live holds:
      SELECT booth_id, COUNT(*) FROM reservations
      WHERE status IN ('pending', 'confirmed') GROUP BY booth_id HAVING COUNT(*) > 1;
    Should return no rows.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_login(self.client)

        if CONTENTION_EVENT_ID is None:
            admin = admin_headers(self.client)
            if not admin:
                return
            event_id = create_event(self.client, admin, "Contention Test Event")
            if event_id is None:
                return
            globals()["CONTENTION_EVENT_ID"] = event_id
            for number in range(1, CONTENTION_BOOTHS + 1):
                resp = self.client.post("/api/v1/booths", json={
                    "eventId": event_id,
                    "boothNumber": f"C{number:03d}",
                    "size": "medium",
                    "price": 500,
                    "locationX": number,
                    "locationY": 1,
                }, headers=admin)
                if resp.status_code == 201:
                    CONTENTION_BOOTH_IDS.append(resp.json()["data"]["id"])
            print(f"\n✓ Created event {event_id} with {len(CONTENTION_BOOTH_IDS)} booths\n")

    @tag("contention")
    @task
    def reserve_contended_booth(self):
        """Everybody fights for the same handful of booths."""
        if not CONTENTION_BOOTH_IDS or not self.headers:
            return

        with self.client.post("/api/v1/booths/reserve",
            json={"boothId": random.choice(CONTENTION_BOOTH_IDS), "eventId": CONTENTION_EVENT_ID},
            headers=self.headers,
            name="/api/v1/booths/reserve [contended]",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400 and resp.json()["error"]["code"] in ("BOOTH_RESERVED", "BOOTH_UNAVAILABLE"):
                resp.success()  # Expected: somebody else holds it
            elif resp.status_code == 503:
                resp.success()  # Admission gate shed the request
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/events?page={page}&pageSize=20",
            name="/api/v1/events [cached]")

    @tag("throughput", "read")
    @task(5)
    def available_booths(self):
        """Never cached: always hits the database."""
        if CONTENTION_EVENT_ID:
            self.client.get(f"/api/v1/booths/available?eventId={CONTENTION_EVENT_ID}",
                name="/api/v1/booths/available")

    @tag("throughput")
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

    def on_start(self):
        self.headers = register_and_login(self.client)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_booth(self):
        with self.client.post("/api/v1/booths/reserve",
            json={"boothId": 999999, "eventId": 1},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 404])

    @tag("edge")
    @task
    def zero_hold_minutes(self):
        with self.client.post("/api/v1/booths/reserve",
            json={"boothId": 1, "eventId": 1, "durationMinutes": 0},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def purchase_unknown_reservation(self):
        with self.client.post("/api/v1/booths/purchase",
            json={"reservationId": 999999},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/booths/reserve",
            data="not json at all",
            headers={**self.headers, "Content-Type": "application/json"},
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/booths/reserve",
            json={"boothId": 1, "eventId": 1},
            catch_response=True
        ) as resp:
            self._expect(resp, [401])

    @tag("edge")
    @task
    def unsigned_webhook(self):
        with self.client.post("/api/v1/webhooks/payment",
            data='{"type": "payment_intent.succeeded"}',
            catch_response=True
        ) as resp:
            self._expect(resp, [400])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some holds, the odd cancellation.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register_and_login(self.client)
        self.reservations = []

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events?page=1&pageSize=20")
        if resp.status_code == 200:
            for event in resp.json()["data"]["events"]:
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def browse_booths(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/booths/available?eventId={random.choice(EVENT_IDS)}",
                name="/api/v1/booths/available")

    @task(10)
    def reserve_booth(self):
        if not EVENT_IDS or not self.headers:
            return
        event_id = random.choice(EVENT_IDS)
        resp = self.client.get(f"/api/v1/booths/available?eventId={event_id}",
            name="/api/v1/booths/available")
        if resp.status_code != 200 or not resp.json()["data"]:
            return
        booth = random.choice(resp.json()["data"])
        resp = self.client.post("/api/v1/booths/reserve",
            json={"boothId": booth["id"], "eventId": event_id},
            headers=self.headers)
        if resp.status_code == 201:
            self.reservations.append(resp.json()["data"]["reservationId"])

    @task(3)
    def cancel_reservation(self):
        if self.reservations:
            reservation_id = self.reservations.pop()
            self.client.post(f"/api/v1/reservations/{reservation_id}/cancel",
                headers=self.headers,
                name="/api/v1/reservations/{id}/cancel")

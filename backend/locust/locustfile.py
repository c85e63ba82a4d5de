"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention   # Test double booking
  locust -f locustfile.py --tags plan         # Test read load on the plan
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

After any run, GET /api/v1/admin/consistency should report consistent: true
(unless admin toggles ran against reserved seats).
"""

import random
import string
from locust import HttpUser, task, between, tag, events

PACKS = ["ticket", "duo", "table"]

# Shared state
RESERVATION_IDS = []


def random_name():
    return "guest_" + "".join(random.choices(string.ascii_lowercase, k=6))


def random_phone():
    return "06" + "".join(random.choices(string.digits, k=8))


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print("SETUP: 25 tables x 10 seats, starting load")
    print("="*60)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    print("\n" + "="*60)
    print(f"Reservations created: {len(RESERVATION_IDS)}")
    print("Check /api/v1/admin/consistency for drift")
    print("="*60)


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - many users racing for the same tables

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    Every returned seat must be unique across responses. Once the venue is
    full, pack reservations return with fewer seats than requested.
    """
    wait_time = between(0, 0.1)

    @tag("contention")
    @task(3)
    def reserve_pack(self):
        pack = random.choice(PACKS)
        with self.client.post("/api/v1/reservations/pack",
            json={"name": random_name(), "phone": random_phone(), "pack": pack},
            name="/api/v1/reservations/pack",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                RESERVATION_IDS.append(resp.json()["id"])
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("contention")
    @task(2)
    def reserve_same_seats(self):
        """Everyone wants table 1, seats 1 and 2."""
        with self.client.post("/api/v1/reservations/seats",
            json={
                "name": random_name(),
                "phone": random_phone(),
                "seats": [{"tableId": 1, "seatId": 1}, {"tableId": 1, "seatId": 2}],
            },
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                RESERVATION_IDS.append(resp.json()["id"])
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: already taken
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("contention")
    @task(1)
    def cancel_reservation(self):
        if not RESERVATION_IDS:
            return
        reservation_id = RESERVATION_IDS.pop(random.randrange(len(RESERVATION_IDS)))
        with self.client.delete(f"/api/v1/reservations/{reservation_id}",
            name="/api/v1/reservations/{id}",
            catch_response=True
        ) as resp:
            if resp.status_code in [200, 404]:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class PlanReader(HttpUser):
    """
    TEST 2: Read load - the seat plan and availability views

    Run: locust -f locustfile.py --tags plan -u 100 -r 20 --run-time 60s

    Compare the memory, redis and database storage backends.
    """
    wait_time = between(0.1, 0.5)

    @tag("plan", "read")
    @task(10)
    def seat_plan(self):
        self.client.get("/api/v1/seats/plan")

    @tag("plan", "read")
    @task(3)
    def available_tables(self):
        pack = random.choice(PACKS)
        self.client.get(f"/api/v1/seats/available-tables?pack={pack}",
            name="/api/v1/seats/available-tables")

    @tag("plan", "read")
    @task(3)
    def available_seats(self):
        table_id = random.randint(1, 25)
        self.client.get(f"/api/v1/seats/tables/{table_id}/available?pack=duo",
            name="/api/v1/seats/tables/{id}/available")

    @tag("plan")
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
    def unknown_pack(self):
        with self.client.post("/api/v1/reservations/pack",
            json={"name": "x", "phone": "1", "pack": "balcony"},
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def seat_outside_layout(self):
        with self.client.post("/api/v1/reservations/seats",
            json={"name": "x", "phone": "1", "seats": [{"tableId": 26, "seatId": 11}]},
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def empty_selection(self):
        with self.client.post("/api/v1/reservations/seats",
            json={"name": "x", "phone": "1", "seats": []},
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def missing_reservation(self):
        with self.client.put("/api/v1/reservations/999999",
            json={"name": "x", "phone": "1", "pack": "duo"},
            name="/api/v1/reservations/{id}",
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/reservations/pack",
            data="not json at all",
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])


class AdminUser(HttpUser):
    """
    TEST 4: Admin workload - edits and seat blocking while guests reserve

    Run: locust -f locustfile.py -u 50 -r 10 --run-time 120s
    """
    wait_time = between(1, 3)

    @tag("admin")
    @task(5)
    def move_reservation(self):
        if not RESERVATION_IDS:
            return
        reservation_id = random.choice(RESERVATION_IDS)
        placement = {"tableId": random.randint(1, 25), "seatId": random.randint(1, 10)}
        with self.client.put(f"/api/v1/reservations/{reservation_id}",
            json={"name": random_name(), "phone": random_phone(), "pack": "duo", "placement": placement},
            name="/api/v1/reservations/{id}",
            catch_response=True
        ) as resp:
            self._expect_ok_or_conflict(resp)

    @tag("admin")
    @task(2)
    def toggle_seat(self):
        table_id, seat_id = random.randint(1, 25), random.randint(1, 10)
        self.client.post(f"/api/v1/seats/{table_id}/{seat_id}/toggle",
            name="/api/v1/seats/{table}/{seat}/toggle")

    @tag("admin")
    @task(1)
    def consistency(self):
        self.client.get("/api/v1/admin/consistency")

    def _expect_ok_or_conflict(self, resp):
        if resp.status_code in [200, 404, 409]:
            resp.success()
        else:
            resp.failure(f"Unexpected: {resp.status_code}")

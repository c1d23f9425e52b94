"""Dispatcher scenarios: route planning and the pickup queue under load.

Several dispatchers planning the same date compete for its planning lease;
a 423 is the expected answer for the losers and counted as a success.
"""

from datetime import date, timedelta

from locust import HttpUser, between, task

from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import DispatcherState


class DispatcherUser(HttpUser):
    wait_time = between(5, 15)

    def on_start(self):
        self.state = DispatcherState()

    @task(3)
    def plan_next_days(self):
        for offset in range(1, 4):
            delivery_date = (date.today() + timedelta(days=offset)).isoformat()
            with self.client.post(
                "/deliveries/routes/plan",
                json={"delivery_date": delivery_date},
                catch_response=True,
                name="POST /deliveries/routes/plan",
            ) as resp:
                if resp.status_code == 200:
                    self.state.planned_dates.append(delivery_date)
                    failed = resp.json()["failed_routes"]
                    if failed:
                        resp.failure(f"Routes failed: {', '.join(failed)}")
                elif resp.status_code == 423:
                    self.state.lease_conflicts += 1
                    resp.success()
                else:
                    resp.failure(f"Plan failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task(1)
    def process_pickups(self):
        self.client.post("/deliveries/pickups/process", json={}, name="POST /deliveries/pickups/process")

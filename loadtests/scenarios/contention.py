"""Contention scenarios for the dispatch concurrency rules.

ContentionUser creates the same order twice in quick succession; exactly one
request may win, the other must answer 409. Any other outcome is a failure.
"""

from locust import HttpUser, constant_pacing, task

from loadtests.data_generators import address_data, order_id
from loadtests.helpers.response import extract_error_detail


class ContentionUser(HttpUser):
    wait_time = constant_pacing(0.5)

    def on_start(self):
        payload = address_data()
        payload["province"], payload["district"] = "Bangkok", "Chatuchak"
        self.client.post("/deliveries/addresses", json=payload, name="POST /deliveries/addresses")
        self.address_id = payload["address_id"]

    @task
    def duplicate_create(self):
        body = {"order_id": order_id(), "address_id": self.address_id}
        codes = []
        for _ in range(2):
            with self.client.post(
                "/deliveries",
                json=body,
                catch_response=True,
                name="[RACE] POST /deliveries",
            ) as resp:
                codes.append(resp.status_code)
                if resp.status_code in (201, 409):
                    resp.success()
                else:
                    resp.failure(f"Unexpected {resp.status_code}: {extract_error_detail(resp)}")
        if sorted(codes) != [201, 409]:
            self.environment.events.request.fire(
                request_type="CHECK",
                name="one task per order",
                response_time=0,
                response_length=0,
                response=None,
                exception=AssertionError(f"Expected one 201 and one 409, got {codes}"),
            )

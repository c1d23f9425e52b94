"""Delivery task load test scenarios.

Two stateful SequentialTaskSet journeys: the full self-delivery lifecycle
driven by status updates (happy path and failed-then-retried), and a
read-heavy customer checking options and tracking.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import address_data, cod_amount, failure_reason, order_id
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import DeliveryState


class _DeliveryJourney(SequentialTaskSet):
    def on_start(self):
        self.state = DeliveryState()

    def _register_address(self):
        payload = address_data()
        with self.client.post(
            "/deliveries/addresses",
            json=payload,
            catch_response=True,
            name="POST /deliveries/addresses",
        ) as resp:
            if resp.status_code == 201:
                self.state.address_id = payload["address_id"]
            else:
                resp.failure(f"Register address failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    def _update_status(self, status, reason=None):
        with self.client.put(
            f"/deliveries/{self.state.task_id}/status",
            json={"status": status, "reason": reason},
            catch_response=True,
            name="PUT /deliveries/{id}/status",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = status
            else:
                resp.failure(f"Status {status} failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()


class DeliveryLifecycleJourney(_DeliveryJourney):
    """Address -> Options -> Create -> Planned -> Dispatched -> In transit ->
    Delivered (or Failed -> Retry).

    Uncovered addresses end the journey at the options step with a 422,
    which is the expected answer and counted as a success.
    """

    @task
    def register_address(self):
        self._register_address()

    @task
    def get_options(self):
        with self.client.get(
            "/deliveries/options",
            params={"address_id": self.state.address_id},
            catch_response=True,
            name="GET /deliveries/options",
        ) as resp:
            if resp.status_code == 422:
                resp.success()
                self.interrupt()
            elif resp.status_code != 200:
                resp.failure(f"Get options failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def create_task(self):
        self.state.order_id = order_id()
        with self.client.post(
            "/deliveries",
            json={"order_id": self.state.order_id, "address_id": self.state.address_id, "cod_amount": cod_amount()},
            catch_response=True,
            name="POST /deliveries",
        ) as resp:
            if resp.status_code == 201:
                self.state.task_id = resp.json()["task_id"]
            elif resp.status_code == 400:
                # COD requested where only non-collecting methods serve the address
                resp.success()
                self.interrupt()
            else:
                resp.failure(f"Create task failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def plan(self):
        self._update_status("planned")

    @task
    def dispatch(self):
        self._update_status("dispatched")

    @task
    def go_in_transit(self):
        self._update_status("in_transit")

    @task
    def finish(self):
        if random.random() < 0.85:
            self._update_status("delivered")
            self.interrupt()
        else:
            self._update_status("failed", failure_reason())

    @task
    def retry(self):
        self._update_status("pending", "Customer asked for another attempt")
        self.interrupt()


class TrackingJourney(_DeliveryJourney):
    """Create a task, then poll it by id, by order and via tracking."""

    @task
    def register_address(self):
        self._register_address()

    @task
    def create_task(self):
        self.state.order_id = order_id()
        with self.client.post(
            "/deliveries",
            json={"order_id": self.state.order_id, "address_id": self.state.address_id},
            catch_response=True,
            name="POST /deliveries",
        ) as resp:
            if resp.status_code == 201:
                self.state.task_id = resp.json()["task_id"]
            elif resp.status_code == 422:
                resp.success()
                self.interrupt()
            else:
                resp.failure(f"Create task failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def poll(self):
        for _ in range(3):
            self.client.get(f"/deliveries/{self.state.task_id}", name="GET /deliveries/{id}")
            self.client.get(f"/deliveries/orders/{self.state.order_id}", name="GET /deliveries/orders/{order_id}")
            self.client.get(f"/deliveries/{self.state.task_id}/tracking", name="GET /deliveries/{id}/tracking")
        self.interrupt()


class DeliveryUser(HttpUser):
    """Locust user simulating storefront and driver traffic.

    Weighted distribution:
    - 60% Full lifecycle
    - 40% Tracking polls
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        DeliveryLifecycleJourney: 3,
        TrackingJourney: 2,
    }

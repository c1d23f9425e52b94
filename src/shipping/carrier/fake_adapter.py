"""In-process carrier used in tests and local runs.

Books every pickup for the next morning and issues mock tracking numbers.
Can be told to reject requests or to behave as if the carrier API is down.
"""

import hashlib
import hmac
from datetime import UTC, datetime, time, timedelta
from uuid import uuid4

from shipping.carrier.port import CarrierPort, PickupRequest, PickupResult, TrackingInfo
from shipping.errors import ExternalServiceError


class FakeCarrier(CarrierPort):
    """Books every pickup unless told otherwise through configure()."""

    def __init__(self, webhook_secret: str | None = None):
        self.should_succeed = True
        self.raise_errors = False
        self.failure_reason = "Carrier unavailable"
        self.webhook_secret = webhook_secret
        self.pickup_calls: list[tuple[str, list[PickupRequest]]] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Carrier unavailable",
        raise_errors: bool = False,
    ):
        """Make later pickups fail, or raise as if the carrier API were down."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_errors = raise_errors

    def schedule_pickup(self, carrier_code: str, requests: list[PickupRequest]) -> list[PickupResult]:
        self.pickup_calls.append((carrier_code, list(requests)))
        if self.raise_errors:
            raise ExternalServiceError(carrier_code, self.failure_reason)
        if not self.should_succeed:
            return [PickupResult(task_id=r.task_id, success=False, error=self.failure_reason) for r in requests]

        now = datetime.now(UTC)
        pickup_time = datetime.combine(now.date() + timedelta(days=1), time(2, 0), tzinfo=UTC)
        return [
            PickupResult(
                task_id=r.task_id,
                success=True,
                tracking_number=f"{carrier_code.upper()}-{uuid4().hex[:10].upper()}",
                pickup_time=pickup_time,
                estimated_delivery=pickup_time + timedelta(days=1),
            )
            for r in requests
        ]

    def get_tracking(self, carrier_code: str, tracking_number: str) -> TrackingInfo:
        if self.raise_errors:
            raise ExternalServiceError(carrier_code, self.failure_reason)
        if not self.should_succeed:
            return TrackingInfo(status="unknown", error=self.failure_reason)

        return TrackingInfo(
            status="in_transit",
            location="Sorting Hub, Bangkok",
            events=(
                {
                    "status": "picked_up",
                    "location": "Merchant warehouse",
                    "occurred_at": datetime.now(UTC).isoformat(),
                },
                {
                    "status": "in_transit",
                    "location": "Sorting Hub, Bangkok",
                    "occurred_at": datetime.now(UTC).isoformat(),
                },
            ),
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        # Without a secret every signature (or none) is accepted
        if not self.webhook_secret:
            return True
        expected = hmac.new(self.webhook_secret.encode(), payload.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature or "")

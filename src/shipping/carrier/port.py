"""Carrier port — abstract interface for third-party delivery carriers.

Dispatch code programs against this port; adapters for individual carriers
(Flash, Kerry, Lalamove, ...) hide their wire protocols behind it and are
selected via configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class PickupRequest:
    task_id: str
    order_id: str
    province: str
    district: str
    subdistrict: str
    cod_amount: float
    pickup_date: date | None = None


@dataclass(frozen=True)
class PickupResult:
    """Outcome of a pickup request for one task."""

    task_id: str
    success: bool
    tracking_number: str | None = None
    pickup_time: datetime | None = None
    estimated_delivery: datetime | None = None
    error: str | None = None


@dataclass(frozen=True)
class TrackingInfo:
    status: str
    location: str | None = None
    events: tuple[dict, ...] = field(default_factory=tuple)
    error: str | None = None


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def schedule_pickup(self, carrier_code: str, requests: list[PickupRequest]) -> list[PickupResult]:
        """Book pickups for a batch of tasks with one carrier.

        Returns one result per request. A carrier that rejects an individual
        task reports it as an unsuccessful result.

        Raises:
            ExternalServiceError: the carrier could not be reached at all.
        """
        ...

    @abstractmethod
    def get_tracking(self, carrier_code: str, tracking_number: str) -> TrackingInfo:
        """Get current tracking status for a shipment."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a status webhook callback is authentic."""
        ...

"""Dispatch error taxonomy.

Caller-facing failures subclass Protean's ``ValidationError`` so they carry a
``{field: [messages]}`` payload and roll back the unit of work like any other
validation failure. Missing records are reported with Protean's
``ObjectNotFoundError``. The API layer maps each kind to its own status code
(see ``shipping.api.errors``).
"""

from protean.exceptions import ValidationError


class NoCoverageError(ValidationError):
    """Neither a delivery route nor an active carrier serves the address."""


class DeliveryConflictError(ValidationError):
    """The order already has a delivery task that is not finished."""


class InvalidCODError(ValidationError):
    """Cash on delivery was requested on a method that cannot collect it."""


class InvalidTransitionError(ValidationError):
    """The status change is not allowed from the task's current status."""


class PlanningInProgressError(ValidationError):
    """Another route planning run holds the lease for the delivery date."""


class ExternalServiceError(Exception):
    """A carrier API call failed: timeout, outage or an unusable response."""

    def __init__(self, carrier_code: str, message: str):
        super().__init__(f"{carrier_code}: {message}")
        self.carrier_code = carrier_code
        self.message = message


class CapacityExceeded(Exception):
    """A manifest is full. Signals a rollover, never reaches a caller."""

    def __init__(self, manifest_id: str, capacity: int):
        super().__init__(f"Manifest {manifest_id} is full ({capacity} stops)")
        self.manifest_id = manifest_id
        self.capacity = capacity

"""What a single simulated user remembers between requests.

A user registers its own addresses and creates its own tasks, so ids and
the last known task status never leak between users.
"""

from dataclasses import dataclass, field


@dataclass
class DeliveryState:
    """Tracks state for a single simulated delivery task lifecycle."""

    address_id: str | None = None
    order_id: str | None = None
    task_id: str | None = None
    delivery_method: str | None = None
    planned_delivery_date: str | None = None
    current_status: str = "pending"


@dataclass
class DispatcherState:
    """Tracks the dates a dispatcher has planned."""

    planned_dates: list[str] = field(default_factory=list)
    lease_conflicts: int = 0

"""Shipping bounded context — delivery dispatch and daily route planning.

Decides how each confirmed order reaches the customer: either on the own
fleet along a scheduled delivery route, or handed to a third-party carrier.
Tracks every delivery task through its lifecycle and batches same-route
tasks into daily vehicle manifests. Uses CQRS; tasks are plain aggregates
persisted through repositories and every state change raises an event.
"""

from protean.domain import Domain

from shipping.utils.logging import configure_logging

configure_logging()

shipping = Domain(name="shipping")

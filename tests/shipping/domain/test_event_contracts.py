"""Shared shipping event contracts must carry the same fields as the source events."""

import pytest
from protean.utils.reflection import declared_fields
from shared.events import shipping as contracts
from shipping.routing import events as routing_events
from shipping.task import events as task_events


def _names(cls):
    return {name for name in declared_fields(cls) if not name.startswith("_")}


@pytest.mark.parametrize(
    "contract, source",
    [
        (contracts.DeliveryTaskCreated, task_events.DeliveryTaskCreated),
        (contracts.DeliveryTaskStatusChanged, task_events.DeliveryTaskStatusChanged),
        (contracts.CODCollected, task_events.CODCollected),
        (contracts.RoutePlanned, routing_events.RoutePlanned),
    ],
)
def test_contract_matches_source(contract, source):
    assert _names(contract) == _names(source)
    assert contract.__version__ == source.__version__

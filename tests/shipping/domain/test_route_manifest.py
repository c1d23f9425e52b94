"""Tests for the RouteManifest aggregate."""

import json
from datetime import UTC, date, datetime

import pytest
from shipping.errors import CapacityExceeded
from shipping.routing.events import RouteManifestExtended, RoutePlanned
from shipping.routing.manifest import RouteManifest, manifest_key
from shipping.task.task import DeliveryTask

NOW = datetime(2026, 10, 22, 12, 0, tzinfo=UTC)
FRIDAY = date(2026, 10, 23)


def _task(n, district="Chatuchak"):
    return DeliveryTask.create(
        order_id=f"ord-man-{n:03d}",
        address_id="addr-001",
        delivery_method="self_delivery",
        delivery_fee=40.0,
        cod_amount=0.0,
        cod_capable=True,
        planned_delivery_date=FRIDAY,
        route_code="BKK-N",
        district=district,
        now=NOW,
    )


def _manifest(capacity=2):
    return RouteManifest.open("BKK-N", FRIDAY, "veh-001", "drv-001", capacity, NOW)


def test_manifest_key_is_deterministic():
    assert manifest_key("BKK-N", FRIDAY, "veh-001") == "BKK-N:2026-10-23:veh-001"
    assert _manifest().id == "BKK-N:2026-10-23:veh-001"


class TestStops:
    def test_stops_numbered_in_order(self):
        manifest = _manifest()
        first, second = _task(1), _task(2)
        manifest.add_stop(first)
        manifest.add_stop(second)
        assert manifest.task_ids == [str(first.id), str(second.id)]
        assert [s.sequence for s in manifest.ordered_stops] == [1, 2]
        assert manifest.remaining_capacity == 0

    def test_full_manifest_refuses_stop(self):
        manifest = _manifest(capacity=1)
        manifest.add_stop(_task(1))
        with pytest.raises(CapacityExceeded) as exc:
            manifest.add_stop(_task(2))
        assert exc.value.capacity == 1
        assert len(manifest.stops) == 1


class TestAnnounce:
    def test_new_manifest_raises_route_planned(self):
        manifest = _manifest()
        task = _task(1)
        manifest.add_stop(task)
        manifest.announce([str(task.id)], is_new=True, now=NOW)
        event = next(e for e in manifest._events if isinstance(e, RoutePlanned))
        assert json.loads(event.task_ids) == [str(task.id)]
        assert event.stop_count == 1

    def test_existing_manifest_raises_extended(self):
        manifest = _manifest()
        task = _task(1)
        manifest.add_stop(task)
        manifest.announce([str(task.id)], is_new=False, now=NOW)
        assert any(isinstance(e, RouteManifestExtended) for e in manifest._events)
        assert not any(isinstance(e, RoutePlanned) for e in manifest._events)

    def test_nothing_added_raises_nothing(self):
        manifest = _manifest()
        manifest.announce([], is_new=False, now=NOW)
        assert manifest._events == []

    def test_summary(self):
        manifest = _manifest()
        task = _task(1)
        manifest.add_stop(task)
        assert manifest.to_summary() == {
            "manifest_id": "BKK-N:2026-10-23:veh-001",
            "vehicle_id": "veh-001",
            "driver_id": "drv-001",
            "task_ids": [str(task.id)],
        }

"""Tests for DeliveryTask business rule invariants."""

from datetime import UTC, date, datetime

import pytest
from protean.exceptions import ValidationError
from shipping.task.task import DeliveryTask

NOW = datetime(2026, 10, 21, 3, 0, tzinfo=UTC)


def _create(**overrides):
    data = dict(
        order_id="ord-inv-001",
        address_id="addr-001",
        delivery_method="self_delivery",
        delivery_fee=40.0,
        cod_amount=0.0,
        cod_capable=True,
        planned_delivery_date=date(2026, 10, 23),
        route_code="BKK-N",
        schedule_days=frozenset({1, 4}),
        now=NOW,
    )
    data.update(overrides)
    return DeliveryTask.create(**data)


class TestFulfillmentPath:
    def test_self_delivery_needs_route(self):
        with pytest.raises(ValidationError) as exc:
            _create(route_code=None, schedule_days=None)
        assert "route_code" in exc.value.messages

    def test_planned_date_must_be_route_day(self):
        with pytest.raises(ValidationError) as exc:
            _create(planned_delivery_date=date(2026, 10, 21))
        assert "planned_delivery_date" in exc.value.messages

    def test_carrier_task_cannot_take_a_vehicle(self):
        task = _create(delivery_method="flash", route_code=None, schedule_days=None)
        with pytest.raises(ValidationError) as exc:
            task.vehicle_id = "veh-001"
        assert "assignment" in exc.value.messages

    def test_self_delivery_task_cannot_take_a_tracking_number(self):
        task = _create()
        task.assign_to_manifest("BKK-N:2026-10-23:veh-1", "veh-1", "drv-1", NOW)
        with pytest.raises(ValidationError):
            task.tracking_number = "FLASH-123"

    def test_carrier_task_cannot_go_on_a_manifest(self):
        task = _create(delivery_method="flash", route_code=None, schedule_days=None)
        with pytest.raises(ValidationError) as exc:
            task.assign_to_manifest("m-1", "veh-1", "drv-1", NOW)
        assert "delivery_method" in exc.value.messages


class TestCashOnDelivery:
    def test_cod_needs_capable_method(self):
        with pytest.raises(ValidationError) as exc:
            _create(cod_amount=500.0, cod_capable=False)
        assert "cod_amount" in exc.value.messages

    def test_cod_on_capable_method(self):
        task = _create(cod_amount=500.0, cod_capable=True)
        assert task.cod_amount == 500.0

    def test_negative_cod_rejected(self):
        with pytest.raises(ValidationError):
            _create(cod_amount=-1.0)

"""Tests for the RoutePlanningLease aggregate."""

from datetime import UTC, datetime, timedelta

import pytest
from shipping.errors import PlanningInProgressError
from shipping.routing.lease import RoutePlanningLease

NOW = datetime(2026, 10, 22, 12, 0, tzinfo=UTC)


def _lease():
    return RoutePlanningLease(id="2026-10-23")


class TestLease:
    def test_acquire(self):
        lease = _lease()
        lease.acquire("cron", NOW, 900)
        assert lease.is_held_by("cron", NOW)
        assert lease.expires_at == NOW + timedelta(seconds=900)

    def test_second_holder_rejected_while_held(self):
        lease = _lease()
        lease.acquire("cron", NOW, 900)
        with pytest.raises(PlanningInProgressError) as exc:
            lease.acquire("manual", NOW + timedelta(seconds=10), 900)
        assert "delivery_date" in exc.value.messages

    def test_same_holder_can_renew(self):
        lease = _lease()
        lease.acquire("cron", NOW, 900)
        lease.acquire("cron", NOW + timedelta(seconds=60), 900)
        assert lease.expires_at == NOW + timedelta(seconds=960)

    def test_expired_lease_can_be_taken_over(self):
        lease = _lease()
        lease.acquire("cron", NOW, 900)
        later = NOW + timedelta(seconds=901)
        lease.acquire("manual", later, 900)
        assert lease.is_held_by("manual", later)

    def test_released_lease_is_free(self):
        lease = _lease()
        lease.acquire("cron", NOW, 900)
        lease.release("cron", NOW)
        assert not lease.is_held(NOW)
        lease.acquire("manual", NOW, 900)
        assert lease.holder == "manual"

    def test_release_by_other_holder_ignored(self):
        lease = _lease()
        lease.acquire("cron", NOW, 900)
        lease.release("manual", NOW)
        assert lease.is_held_by("cron", NOW)

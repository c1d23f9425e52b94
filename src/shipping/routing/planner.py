"""RoutePlanner — daily batch that loads pending self-delivery tasks onto vehicles.

For one delivery date:

1. pending self-delivery tasks planned for the date are grouped by route;
2. each group is ordered by a proximity key (district, subdistrict, then age),
   a cheap stand-in for path optimization that keeps neighbours together;
3. manifests already built for the route and date are topped up first, then
   free vehicles open new manifests, in license-plate order;
4. what does not fit rolls over to the route's next scheduled day and stays
   pending.

Each route is planned by its own ``PlanRoute`` command and commits on its own.
A route that fails rolls back, is reported, and the rest of the batch carries
on. Tasks that are no longer pending are never looked at again, so re-running a
date reproduces the same manifests.

``plan_daily_routes`` wraps the batch in the date's planning lease; the
``PlanRoute`` handler refuses to run without it.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Date, DateTime, String
from protean.utils.globals import current_domain

from shipping.catalog.snapshot import RouteCatalog, RouteEntry
from shipping.domain import shipping
from shipping.errors import CapacityExceeded, PlanningInProgressError
from shipping.fleet.vehicle import VehiclePool
from shipping.planning.schedule import next_delivery_date
from shipping.routing.lease import AcquirePlanningLease, ReleasePlanningLease, RoutePlanningLease, lease_key
from shipping.routing.manifest import RouteManifest
from shipping.settings import get_settings
from shipping.task.task import DeliveryTask

logger = structlog.get_logger(__name__)

_SCAN_LIMIT = 1000


def proximity_key(task: DeliveryTask):
    return (
        (task.district or "").casefold(),
        (task.subdistrict or "").casefold(),
        task.created_at.isoformat() if task.created_at else "",
        str(task.id),
    )


@dataclass
class RoutePlan:
    """What one route's planning decided, before anything is applied."""

    route: RouteEntry
    manifests: list = field(default_factory=list)  # (manifest, is_new, [tasks])
    rollovers: list = field(default_factory=list)  # tasks
    rollover_date: date | None = None


@shipping.command(part_of="RouteManifest")
class PlanRoute:
    """Load one route's pending tasks for a delivery date onto its vehicles."""

    delivery_date = Date(required=True)
    route_code = String(required=True, max_length=50)
    holder = String(required=True, max_length=100)  # Lease holder running the batch
    requested_at = DateTime()


@shipping.command_handler(part_of=RouteManifest)
class PlanRouteHandler:
    @handle(PlanRoute)
    def plan_route(self, command) -> dict:
        delivery_date = command.delivery_date
        route_code = command.route_code
        now = command.requested_at or datetime.now(UTC)
        _assert_lease(delivery_date, command.holder, now)

        task_repo = current_domain.repository_for(DeliveryTask)
        manifest_repo = current_domain.repository_for(RouteManifest)

        tasks = sorted(
            (t for t in task_repo.find_pending_for_date(delivery_date) if t.route_code == route_code),
            key=proximity_key,
        )
        manifests = _manifests_for(delivery_date)
        existing = [m for m in manifests if m.route_code == route_code]
        taken = {str(m.vehicle_id) for m in manifests}

        plan = _plan_route(
            route_code,
            tasks,
            delivery_date,
            RouteCatalog.load(),
            VehiclePool.load(get_settings().default_vehicle_capacity),
            existing,
            taken,
            now,
        )
        _apply(plan, task_repo, manifest_repo, now)
        return _outcome(plan, existing)


def _assert_lease(delivery_date: date, holder: str, now: datetime) -> None:
    try:
        lease = current_domain.repository_for(RoutePlanningLease).get(lease_key(delivery_date))
    except ObjectNotFoundError:
        lease = None
    if lease is None or not lease.is_held_by(holder, now):
        raise PlanningInProgressError(
            {"delivery_date": [f"Planning {delivery_date} requires the planning lease held by {holder}"]}
        )


def _plan_route(
    route_code: str,
    tasks: list[DeliveryTask],
    delivery_date: date,
    catalog: RouteCatalog,
    pool: VehiclePool,
    manifests: list[RouteManifest],
    taken: set[str],
    now: datetime,
) -> RoutePlan:
    route = catalog.get(route_code)
    if route is None:
        raise ValueError(f"Route {route_code} is not an active route")
    plan = RoutePlan(route=route)
    queue = list(tasks)

    candidates = [(m, False) for m in sorted(manifests, key=lambda m: m.id)]
    candidates += [
        (RouteManifest.open(route_code, delivery_date, v.vehicle_id, v.driver_id, v.capacity, now), True)
        for v in pool.free_for(route_code, taken)
    ]
    for manifest, is_new in candidates:
        if not queue:
            break
        loaded = []
        while queue:
            try:
                manifest.add_stop(queue[0])
            except CapacityExceeded:
                break
            loaded.append(queue.pop(0))
        if loaded:
            plan.manifests.append((manifest, is_new, loaded))

    if queue:
        plan.rollovers = queue
        plan.rollover_date = next_delivery_date(route.delivery_days, delivery_date + timedelta(days=1))
    return plan


def _apply(plan: RoutePlan, task_repo, manifest_repo, now: datetime) -> None:
    for manifest, is_new, loaded in plan.manifests:
        for task in loaded:
            task.assign_to_manifest(manifest.id, str(manifest.vehicle_id), str(manifest.driver_id), now)
            task_repo.add(task)
        manifest.announce([str(t.id) for t in loaded], is_new, now)
        manifest_repo.add(manifest)

    for task in plan.rollovers:
        task.reschedule(
            plan.rollover_date,
            plan.route.delivery_days,
            reason=f"Route {plan.route.code} full on {task.planned_delivery_date}",
            now=now,
        )
        task_repo.add(task)
        logger.info(
            "Task rolled over",
            task_id=str(task.id),
            route_code=plan.route.code,
            new_date=str(plan.rollover_date),
        )


def _manifests_for(delivery_date: date) -> list[RouteManifest]:
    repo = current_domain.repository_for(RouteManifest)
    results = repo._dao.query.filter(delivery_date=delivery_date).limit(_SCAN_LIMIT).all()
    return sorted(results.items, key=lambda m: m.id)


def _routes_to_plan(delivery_date: date) -> list[str]:
    pending = current_domain.repository_for(DeliveryTask).find_pending_for_date(delivery_date)
    codes = {t.route_code for t in pending} | {m.route_code for m in _manifests_for(delivery_date)}
    return sorted(code for code in codes if code)


def _outcome(plan: RoutePlan, previous: list[RouteManifest]) -> dict:
    manifests = {m.id: m for m in previous}
    manifests.update({m.id: m for m, _, _ in plan.manifests})
    return {
        "route_code": plan.route.code,
        "status": "planned" if manifests else "rolled_over",
        "manifests": [manifests[key].to_summary() for key in sorted(manifests)],
        "rolled_over": [str(t.id) for t in plan.rollovers],
        "rollover_date": plan.rollover_date.isoformat() if plan.rollover_date else None,
        "error": None,
    }


def _failed(route_code: str, error: Exception) -> dict:
    return {
        "route_code": route_code,
        "status": "failed",
        "manifests": [],
        "rolled_over": [],
        "rollover_date": None,
        "error": str(error),
    }


def _plan_all_routes(delivery_date: date, holder: str, now: datetime) -> dict:
    outcomes = []
    for route_code in _routes_to_plan(delivery_date):
        try:
            outcome = current_domain.process(
                PlanRoute(delivery_date=delivery_date, route_code=route_code, holder=holder, requested_at=now),
                asynchronous=False,
            )
        except PlanningInProgressError:
            # Lease lost mid-run: whoever holds it now owns the remaining routes
            raise
        except Exception as e:
            logger.error("Route planning failed", route_code=route_code, error=str(e))
            outcome = _failed(route_code, e)
        outcomes.append(outcome)

    summary = {
        "delivery_date": delivery_date.isoformat(),
        "routes": outcomes,
        "planned_tasks": sum(len(m["task_ids"]) for o in outcomes for m in o["manifests"]),
        "rolled_over_tasks": sum(len(o["rolled_over"]) for o in outcomes),
        "failed_routes": [o["route_code"] for o in outcomes if o["status"] == "failed"],
    }
    logger.info(
        "Daily routes planned",
        planned_tasks=summary["planned_tasks"],
        rolled_over_tasks=summary["rolled_over_tasks"],
        failed_routes=len(summary["failed_routes"]),
    )
    return summary


def plan_daily_routes(delivery_date: date, holder: str | None = None, now: datetime | None = None) -> dict:
    """Run the planning batch for a date under its planning lease.

    Each route is a separate ``PlanRoute`` command, so a route that fails
    rolls back alone and the routes before and after it still commit.
    Raises PlanningInProgressError when another run holds the lease.
    """
    holder = holder or f"planner-{uuid4().hex[:8]}"
    now = now or datetime.now(UTC)
    with structlog.contextvars.bound_contextvars(planning_holder=holder, delivery_date=str(delivery_date)):
        current_domain.process(
            AcquirePlanningLease(delivery_date=delivery_date, holder=holder, requested_at=now),
            asynchronous=False,
        )
        try:
            return _plan_all_routes(delivery_date, holder, now)
        finally:
            current_domain.process(ReleasePlanningLease(delivery_date=delivery_date, holder=holder), asynchronous=False)

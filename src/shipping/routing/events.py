"""Route planning events."""

from protean.fields import Date, DateTime, Identifier, Integer, String, Text

from shipping.domain import shipping


@shipping.event(part_of="RouteManifest")
class RoutePlanned:
    """A vehicle manifest was built for a route and day."""

    __version__ = 1

    manifest_id = String(required=True)
    route_code = String(required=True)
    delivery_date = Date(required=True)
    vehicle_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    task_ids = Text(required=True)  # JSON list, in stop order
    stop_count = Integer(required=True)
    planned_at = DateTime(required=True)


@shipping.event(part_of="RouteManifest")
class RouteManifestExtended:
    """Tasks were appended to a manifest built by an earlier run."""

    __version__ = 1

    manifest_id = String(required=True)
    added_task_ids = Text(required=True)  # JSON list, in stop order
    stop_count = Integer(required=True)
    extended_at = DateTime(required=True)

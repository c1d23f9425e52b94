"""FastAPI routes for the Shipping domain.

Thin adapters that translate HTTP requests into domain commands.
No business logic — just schema→command→response translation.
"""

import json
import os
from datetime import date, datetime

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from protean.utils.globals import current_domain

from shipping.address import get_address_book
from shipping.address.fake_adapter import FakeAddressBook
from shipping.address.port import Address
from shipping.api.schemas import (
    AddressIdResponse,
    AssignDriverRequest,
    CancelDeliveryTaskRequest,
    CarrierConfigResponse,
    CarrierStatusWebhookRequest,
    CodeResponse,
    ConfigureCarrierRequest,
    CreateDeliveryTaskRequest,
    DefineDeliveryRouteRequest,
    DeliveryOptionResponse,
    DeliveryOptionsResponse,
    DeliveryTaskResponse,
    PickupRunResponse,
    PlanRoutesRequest,
    ProcessPickupsRequest,
    RegisterAddressRequest,
    RegisterCarrierRequest,
    RegisterVehicleRequest,
    StatusResponse,
    StatusUpdateResponse,
    TaskIdResponse,
    TrackingResponse,
    UpdateTaskStatusRequest,
    VehicleIdResponse,
)
from shipping.carrier import get_carrier
from shipping.carrier.fake_adapter import FakeCarrier
from shipping.catalog.carrier import DeliveryCarrier
from shipping.catalog.management import (
    DeactivateCarrier,
    DeactivateDeliveryRoute,
    DefineDeliveryRoute,
    RegisterCarrier,
)
from shipping.fleet.vehicle import AssignDriver, DeactivateVehicle, RegisterVehicle
from shipping.planning.options import get_delivery_options
from shipping.routing.planner import plan_daily_routes
from shipping.task.creation import CreateDeliveryTask
from shipping.task.pickup import ProcessPickupQueue
from shipping.task.status import CancelDeliveryTask, UpdateTaskStatus
from shipping.task.task import DeliveryTask


def _parse_datetime(value: str | None, field: str) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be an ISO 8601 datetime") from None


def _parse_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be a YYYY-MM-DD date") from None


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _task_response(task: DeliveryTask) -> DeliveryTaskResponse:
    return DeliveryTaskResponse(
        task_id=str(task.id),
        order_id=str(task.order_id),
        address_id=str(task.address_id),
        delivery_method=task.delivery_method,
        status=task.status,
        route_code=task.route_code,
        carrier_code=task.carrier_code,
        tracking_number=task.tracking_number,
        vehicle_id=str(task.vehicle_id) if task.vehicle_id else None,
        driver_id=str(task.driver_id) if task.driver_id else None,
        manifest_id=task.manifest_id,
        planned_delivery_date=_iso(task.planned_delivery_date),
        estimated_delivery_time=_iso(task.estimated_delivery_time),
        actual_pickup_time=_iso(task.actual_pickup_time),
        actual_delivery_time=_iso(task.actual_delivery_time),
        delivery_fee=task.delivery_fee,
        cod_amount=task.cod_amount,
        retry_count=task.retry_count,
        max_retries=task.max_retries,
        pickup_status=task.pickup_status,
        pickup_attempts=task.pickup_attempts or 0,
    )


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@delivery_router.post("", status_code=201, response_model=TaskIdResponse)
async def create_delivery_task(body: CreateDeliveryTaskRequest) -> TaskIdResponse:
    """Create the delivery task for a confirmed order."""
    command = CreateDeliveryTask(
        order_id=body.order_id,
        address_id=body.address_id,
        cod_amount=body.cod_amount,
        delivery_method=body.delivery_method,
    )
    result = current_domain.process(command, asynchronous=False)
    return TaskIdResponse(task_id=result)


@delivery_router.get("/options", response_model=DeliveryOptionsResponse)
async def list_delivery_options(address_id: str, cod_amount: float = 0.0) -> DeliveryOptionsResponse:
    """Ranked delivery options for an address, best first."""
    options = get_delivery_options(address_id, cod_amount)
    return DeliveryOptionsResponse(
        address_id=address_id,
        cod_amount=cod_amount,
        options=[
            DeliveryOptionResponse(
                method=o.method,
                fee=o.fee,
                planned_date=o.planned_date.isoformat(),
                estimated_delivery=o.estimated_delivery.isoformat(),
                estimated_hours=o.estimated_hours,
                cod_capable=o.cod_capable,
                route_code=o.route_code,
                carrier_code=o.carrier_code,
                is_recommended=o.is_recommended,
                reason=o.reason,
            )
            for o in options
        ],
    )


@delivery_router.get("/orders/{order_id}", response_model=DeliveryTaskResponse)
async def get_task_by_order(order_id: str) -> DeliveryTaskResponse:
    """The order's open task, else its most recent one."""
    task = current_domain.repository_for(DeliveryTask).get_for_order(order_id)
    return _task_response(task)


@delivery_router.post("/webhooks/carrier", response_model=StatusUpdateResponse)
async def carrier_status_webhook(
    request: Request,
    x_carrier_signature: str = Header(default=""),
) -> StatusUpdateResponse:
    """Apply a carrier's status callback to its task.

    The signature covers the raw request body exactly as the carrier sent it,
    so it is checked before the body is parsed.
    """
    raw = await request.body()
    if not get_carrier().verify_webhook_signature(raw.decode("utf-8", errors="replace"), x_carrier_signature):
        raise HTTPException(status_code=401, detail="Invalid carrier webhook signature")
    try:
        body = CarrierStatusWebhookRequest.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    command = UpdateTaskStatus(
        task_id=body.task_id,
        status=body.status,
        reason=body.reason,
        occurred_at=_parse_datetime(body.occurred_at, "occurred_at"),
    )
    changed = current_domain.process(command, asynchronous=False)
    return StatusUpdateResponse(status=body.status, changed=bool(changed))


@delivery_router.post("/routes/plan")
async def plan_routes(body: PlanRoutesRequest) -> dict:
    """Build vehicle manifests for a delivery date."""
    return plan_daily_routes(_parse_date(body.delivery_date, "delivery_date"))


@delivery_router.post("/pickups/process", response_model=PickupRunResponse)
async def process_pickups(body: ProcessPickupsRequest) -> PickupRunResponse:
    """Book carrier pickups for every due task."""
    command = ProcessPickupQueue(as_of=_parse_datetime(body.as_of, "as_of"))
    summary = current_domain.process(command, asynchronous=False)
    return PickupRunResponse(**summary)


@delivery_router.post("/carrier/configure", response_model=CarrierConfigResponse)
async def configure_carrier(body: ConfigureCarrierRequest) -> CarrierConfigResponse:
    """Configure the FakeCarrier behavior (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Carrier configuration not available in production")

    carrier = get_carrier()
    if not isinstance(carrier, FakeCarrier):
        raise HTTPException(status_code=400, detail="Carrier configuration only available for FakeCarrier")

    carrier.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        raise_errors=body.raise_errors,
    )
    return CarrierConfigResponse(
        carrier=type(carrier).__name__,
        should_succeed=carrier.should_succeed,
        failure_reason=carrier.failure_reason,
        raise_errors=carrier.raise_errors,
    )


@delivery_router.post("/addresses", status_code=201, response_model=AddressIdResponse)
async def register_address(body: RegisterAddressRequest) -> AddressIdResponse:
    """Load an address into the FakeAddressBook (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Address registration not available in production")

    address_book = get_address_book()
    if not isinstance(address_book, FakeAddressBook):
        raise HTTPException(status_code=400, detail="Address registration only available for FakeAddressBook")

    address = address_book.register(Address(**body.model_dump()))
    return AddressIdResponse(address_id=address.address_id)


@delivery_router.get("/{task_id}", response_model=DeliveryTaskResponse)
async def get_delivery_task(task_id: str) -> DeliveryTaskResponse:
    task = current_domain.repository_for(DeliveryTask).get(task_id)
    return _task_response(task)


@delivery_router.get("/{task_id}/tracking", response_model=TrackingResponse)
async def get_tracking(task_id: str) -> TrackingResponse:
    """Task status, plus the carrier's view of the parcel for carrier tasks."""
    task = current_domain.repository_for(DeliveryTask).get(task_id)
    response = TrackingResponse(
        task_id=str(task.id),
        delivery_method=task.delivery_method,
        status=task.status,
        tracking_number=task.tracking_number,
    )
    if task.is_self_delivery or not task.tracking_number:
        return response

    carrier = current_domain.repository_for(DeliveryCarrier).get(task.carrier_code)
    info = get_carrier().get_tracking(task.carrier_code, task.tracking_number)
    response.tracking_url = carrier.tracking_url(task.tracking_number)
    response.carrier_status = info.status
    response.location = info.location
    response.events = list(info.events)
    return response


@delivery_router.put("/{task_id}/status", response_model=StatusUpdateResponse)
async def update_task_status(task_id: str, body: UpdateTaskStatusRequest) -> StatusUpdateResponse:
    """Move a task to a new status. Repeating the current status is a no-op."""
    command = UpdateTaskStatus(
        task_id=task_id,
        status=body.status,
        reason=body.reason,
        occurred_at=_parse_datetime(body.occurred_at, "occurred_at"),
    )
    changed = current_domain.process(command, asynchronous=False)
    return StatusUpdateResponse(status=body.status, changed=bool(changed))


@delivery_router.put("/{task_id}/cancel", response_model=StatusResponse)
async def cancel_delivery_task(task_id: str, body: CancelDeliveryTaskRequest) -> StatusResponse:
    command = CancelDeliveryTask(task_id=task_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="cancelled")


# ---------------------------------------------------------------------------
# Delivery Route Router
# ---------------------------------------------------------------------------
route_router = APIRouter(prefix="/delivery-routes", tags=["delivery-routes"])


@route_router.post("", status_code=201, response_model=CodeResponse)
async def define_delivery_route(body: DefineDeliveryRouteRequest) -> CodeResponse:
    """Create a delivery route, or replace the definition of an existing one."""
    command = DefineDeliveryRoute(
        code=body.code,
        name=body.name,
        delivery_days=json.dumps(body.delivery_days),
        base_fee=body.base_fee,
        provinces=json.dumps(body.provinces),
        districts=json.dumps(body.districts),
        subdistricts=json.dumps(body.subdistricts),
        cod_available=body.cod_available,
    )
    result = current_domain.process(command, asynchronous=False)
    return CodeResponse(code=result)


@route_router.put("/{code}/deactivate", response_model=StatusResponse)
async def deactivate_delivery_route(code: str) -> StatusResponse:
    current_domain.process(DeactivateDeliveryRoute(code=code), asynchronous=False)
    return StatusResponse(status="deactivated")


# ---------------------------------------------------------------------------
# Carrier Router
# ---------------------------------------------------------------------------
carrier_router = APIRouter(prefix="/carriers", tags=["carriers"])


@carrier_router.post("", status_code=201, response_model=CodeResponse)
async def register_carrier(body: RegisterCarrierRequest) -> CodeResponse:
    """Register a carrier, or replace the terms of an existing one."""
    command = RegisterCarrier(
        code=body.code,
        display_name=body.display_name,
        pricing_rules=json.dumps(body.pricing_rules),
        carrier_type=body.carrier_type,
        provinces=json.dumps(body.provinces),
        cutoff_time=body.cutoff_time,
        transit_days=body.transit_days,
        cod_available=body.cod_available,
        priority=body.priority,
        tracking_url_template=body.tracking_url_template,
    )
    result = current_domain.process(command, asynchronous=False)
    return CodeResponse(code=result)


@carrier_router.put("/{code}/deactivate", response_model=StatusResponse)
async def deactivate_carrier(code: str) -> StatusResponse:
    current_domain.process(DeactivateCarrier(code=code), asynchronous=False)
    return StatusResponse(status="deactivated")


# ---------------------------------------------------------------------------
# Vehicle Router
# ---------------------------------------------------------------------------
vehicle_router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@vehicle_router.post("", status_code=201, response_model=VehicleIdResponse)
async def register_vehicle(body: RegisterVehicleRequest) -> VehicleIdResponse:
    command = RegisterVehicle(
        license_plate=body.license_plate,
        driver_id=body.driver_id,
        capacity=body.capacity,
        route_codes=json.dumps(body.route_codes),
    )
    result = current_domain.process(command, asynchronous=False)
    return VehicleIdResponse(vehicle_id=result)


@vehicle_router.put("/{vehicle_id}/driver", response_model=StatusResponse)
async def assign_driver(vehicle_id: str, body: AssignDriverRequest) -> StatusResponse:
    command = AssignDriver(vehicle_id=vehicle_id, driver_id=body.driver_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="driver_assigned")


@vehicle_router.put("/{vehicle_id}/deactivate", response_model=StatusResponse)
async def deactivate_vehicle(vehicle_id: str) -> StatusResponse:
    current_domain.process(DeactivateVehicle(vehicle_id=vehicle_id), asynchronous=False)
    return StatusResponse(status="deactivated")

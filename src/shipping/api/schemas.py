"""Pydantic API schemas for the Shipping domain.

These are the external API contracts — separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class CreateDeliveryTaskRequest(BaseModel):
    order_id: str
    address_id: str
    cod_amount: float = Field(default=0.0, ge=0.0)
    delivery_method: str | None = None


class UpdateTaskStatusRequest(BaseModel):
    status: str
    reason: str | None = None
    occurred_at: str | None = None  # ISO 8601


class CancelDeliveryTaskRequest(BaseModel):
    reason: str


class CarrierStatusWebhookRequest(BaseModel):
    task_id: str
    status: str
    reason: str | None = None
    occurred_at: str | None = None


class PlanRoutesRequest(BaseModel):
    delivery_date: str  # YYYY-MM-DD


class ProcessPickupsRequest(BaseModel):
    as_of: str | None = None


class DefineDeliveryRouteRequest(BaseModel):
    code: str
    name: str
    delivery_days: list[str]
    base_fee: float = Field(ge=0.0)
    provinces: list[str] = []
    districts: list[str] = []
    subdistricts: list[str] = []
    cod_available: bool = True


class RegisterCarrierRequest(BaseModel):
    code: str
    display_name: str
    pricing_rules: dict
    carrier_type: str = "scheduled"
    provinces: list[str] = []
    cutoff_time: str = "15:00"
    transit_days: int = 1
    cod_available: bool = False
    priority: int = 100
    tracking_url_template: str | None = None


class RegisterVehicleRequest(BaseModel):
    license_plate: str
    driver_id: str | None = None
    capacity: int | None = Field(default=None, ge=1)
    route_codes: list[str] = []


class AssignDriverRequest(BaseModel):
    driver_id: str


class RegisterAddressRequest(BaseModel):
    address_id: str
    province: str
    district: str = ""
    subdistrict: str = ""
    postal_code: str = ""
    route_hint: str | None = None


class ConfigureCarrierRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Carrier unavailable"
    raise_errors: bool = False


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class TaskIdResponse(BaseModel):
    task_id: str


class CodeResponse(BaseModel):
    code: str


class VehicleIdResponse(BaseModel):
    vehicle_id: str


class StatusResponse(BaseModel):
    status: str


class StatusUpdateResponse(BaseModel):
    status: str
    changed: bool


class DeliveryOptionResponse(BaseModel):
    method: str
    fee: float
    planned_date: str
    estimated_delivery: str
    estimated_hours: int
    cod_capable: bool
    route_code: str | None = None
    carrier_code: str | None = None
    is_recommended: bool = False
    reason: str = ""


class DeliveryOptionsResponse(BaseModel):
    address_id: str
    cod_amount: float
    options: list[DeliveryOptionResponse]


class DeliveryTaskResponse(BaseModel):
    task_id: str
    order_id: str
    address_id: str
    delivery_method: str
    status: str
    route_code: str | None = None
    carrier_code: str | None = None
    tracking_number: str | None = None
    vehicle_id: str | None = None
    driver_id: str | None = None
    manifest_id: str | None = None
    planned_delivery_date: str | None = None
    estimated_delivery_time: str | None = None
    actual_pickup_time: str | None = None
    actual_delivery_time: str | None = None
    delivery_fee: float
    cod_amount: float
    retry_count: int
    max_retries: int
    pickup_status: str | None = None
    pickup_attempts: int = 0


class TrackingResponse(BaseModel):
    task_id: str
    delivery_method: str
    status: str
    tracking_number: str | None = None
    tracking_url: str | None = None
    carrier_status: str | None = None
    location: str | None = None
    events: list[dict] = []


class PickupRunResponse(BaseModel):
    scheduled: int
    retrying: int
    exhausted: int


class AddressIdResponse(BaseModel):
    address_id: str


class CarrierConfigResponse(BaseModel):
    carrier: str
    should_succeed: bool
    failure_reason: str
    raise_errors: bool

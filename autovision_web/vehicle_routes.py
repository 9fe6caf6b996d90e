"""
Vehicle routes, including the approval workflow. Prefix: /api/vehicles

Audit writes are queued as background tasks and run after the response
is produced.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from autovision.activity import ActivityLogger, RequestContext, VehicleHistoryEntry, diff_fields
from autovision.auth.models import IdentityClaim
from autovision.core.exceptions import ValidationFailed
from autovision.vehicles import ApprovalWorkflow, Vehicle, VehicleStore
from autovision.vehicles.models import VehicleCreate, VehicleFilters, VehiclePage, VehicleUpdate

from .auth_middleware import require_admin, require_auth
from .deps import get_audit, get_vehicles, get_workflow, request_context

router = APIRouter(prefix="/api/vehicles", tags=["vehicles"])


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value if value not in (None, "") else None


def vehicle_filters(
    make: Optional[str] = None,
    model: Optional[str] = None,
    status_: Optional[str] = Query(None, alias="status"),
    approval_status: Optional[str] = Query(None, alias="approvalStatus"),
    min_year: Optional[str] = Query(None, alias="minYear"),
    max_year: Optional[str] = Query(None, alias="maxYear"),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    min_km: Optional[str] = Query(None, alias="minKm"),
    max_km: Optional[str] = Query(None, alias="maxKm"),
    color: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> VehicleFilters:
    """Query-string filters; empty values count as absent."""
    raw = {
        "make": make,
        "model": model,
        "status": status_,
        "approval_status": approval_status,
        "min_year": min_year,
        "max_year": max_year,
        "min_price": min_price,
        "max_price": max_price,
        "min_km": min_km,
        "max_km": max_km,
        "color": color,
        "search": search,
    }
    cleaned = {k: v for k, v in raw.items() if _blank_to_none(v) is not None}
    try:
        return VehicleFilters(**cleaned, page=page, limit=limit)
    except ValidationError as e:
        raise ValidationFailed("Invalid filter parameters") from e


def _record_history(
    audit: ActivityLogger,
    vehicle_id: str,
    actor_id: str,
    activity_action: str,
    history_action: str,
    detail: Any,
    changes: Optional[Dict[str, Any]],
    context: RequestContext,
) -> None:
    audit.record(actor_id, activity_action, "vehicle", vehicle_id, detail, context)
    audit.record_field_change(vehicle_id, actor_id, history_action, changes)


@router.get("", response_model=VehiclePage)
async def list_vehicles(
    filters: VehicleFilters = Depends(vehicle_filters),
    _: IdentityClaim = Depends(require_auth),
    store: VehicleStore = Depends(get_vehicles),
) -> VehiclePage:
    vehicles, total = store.list(filters)
    return VehiclePage(vehicles=vehicles, total=total)


@router.get("/pending", response_model=List[Vehicle])
async def pending_vehicles(
    _: IdentityClaim = Depends(require_admin),
    store: VehicleStore = Depends(get_vehicles),
) -> List[Vehicle]:
    return store.pending()


@router.get("/stats")
async def vehicle_stats(
    _: IdentityClaim = Depends(require_auth),
    store: VehicleStore = Depends(get_vehicles),
) -> Dict[str, Any]:
    return store.stats()


class CompareRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    vehicle_ids: List[str] = Field(default_factory=list)


class VehicleComparison(BaseModel):
    vehicles: List[Vehicle]


@router.post("/compare", response_model=VehicleComparison)
async def compare_vehicles(
    body: CompareRequest,
    _: IdentityClaim = Depends(require_auth),
    store: VehicleStore = Depends(get_vehicles),
) -> VehicleComparison:
    """Side-by-side lookup of two or more vehicles."""
    if len(body.vehicle_ids) < 2:
        raise ValidationFailed("Select at least two vehicles to compare")
    vehicles = store.find_many(body.vehicle_ids)
    if len(vehicles) < 2:
        raise ValidationFailed("Vehicles not found")
    return VehicleComparison(vehicles=vehicles)


@router.get("/{vehicle_id}", response_model=Vehicle)
async def get_vehicle(
    vehicle_id: str,
    _: IdentityClaim = Depends(require_auth),
    store: VehicleStore = Depends(get_vehicles),
) -> Vehicle:
    return store.require(vehicle_id)


@router.post("", response_model=Vehicle, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    body: VehicleCreate,
    background_tasks: BackgroundTasks,
    identity: IdentityClaim = Depends(require_auth),
    store: VehicleStore = Depends(get_vehicles),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> Vehicle:
    """Any signed-in user may list a vehicle; it starts pending approval."""
    vehicle = store.create(body, created_by=identity.id)
    background_tasks.add_task(
        _record_history,
        audit,
        vehicle.id,
        identity.id,
        "CREATE_VEHICLE",
        "CREATE",
        {"make": vehicle.make, "model": vehicle.model, "year": vehicle.fabricate_year},
        body.model_dump(mode="json", by_alias=True),
        context,
    )
    return vehicle


@router.put("/{vehicle_id}", response_model=Vehicle)
async def update_vehicle(
    vehicle_id: str,
    body: VehicleUpdate,
    background_tasks: BackgroundTasks,
    admin: IdentityClaim = Depends(require_admin),
    store: VehicleStore = Depends(get_vehicles),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> Vehicle:
    """
    Admin edit. An approvalStatus in the body goes through the workflow,
    which allows an admin any target state.
    """
    existing = store.require(vehicle_id)
    changes = body.model_dump(exclude_unset=True)
    new_approval = changes.pop("approval_status", None)

    updated = store.update(vehicle_id, changes) if changes else existing
    if new_approval is not None:
        updated = workflow.set_approval_status(vehicle_id, admin, new_approval)

    requested = body.model_dump(mode="json", exclude_unset=True, by_alias=True)
    before = existing.model_dump(mode="json", by_alias=True)
    after = updated.model_dump(mode="json", by_alias=True)
    field_changes = diff_fields(
        {k: before.get(k) for k in requested}, {k: after.get(k) for k in requested}
    )
    background_tasks.add_task(
        _record_history,
        audit,
        vehicle_id,
        admin.id,
        "UPDATE_VEHICLE",
        "UPDATE",
        {"changes": requested},
        field_changes,
        context,
    )
    return updated


@router.delete("/{vehicle_id}")
async def delete_vehicle(
    vehicle_id: str,
    background_tasks: BackgroundTasks,
    admin: IdentityClaim = Depends(require_admin),
    store: VehicleStore = Depends(get_vehicles),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> Dict[str, str]:
    vehicle = store.require(vehicle_id)
    store.delete(vehicle_id)
    background_tasks.add_task(
        audit.record,
        admin.id,
        "DELETE_VEHICLE",
        "vehicle",
        vehicle_id,
        {"make": vehicle.make, "model": vehicle.model, "year": vehicle.fabricate_year},
        context,
    )
    return {"message": "Vehicle deleted"}


@router.post("/{vehicle_id}/request-approval", response_model=Vehicle)
async def request_approval(
    vehicle_id: str,
    background_tasks: BackgroundTasks,
    identity: IdentityClaim = Depends(require_auth),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> Vehicle:
    """Owner or admin; 409 when the listing is already approved."""
    vehicle = workflow.request_approval(vehicle_id, identity)
    background_tasks.add_task(
        _record_history,
        audit,
        vehicle_id,
        identity.id,
        "REQUEST_APPROVAL",
        "REQUEST_APPROVAL",
        {"make": vehicle.make, "model": vehicle.model},
        {"approvalStatus": vehicle.approval_status.value},
        context,
    )
    return vehicle


@router.post("/{vehicle_id}/approve", response_model=Vehicle)
async def approve_vehicle(
    vehicle_id: str,
    background_tasks: BackgroundTasks,
    admin: IdentityClaim = Depends(require_admin),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> Vehicle:
    vehicle = workflow.approve(vehicle_id, admin)
    background_tasks.add_task(
        _record_history,
        audit,
        vehicle_id,
        admin.id,
        "APPROVE_VEHICLE",
        "APPROVE",
        {"make": vehicle.make, "model": vehicle.model},
        {"approvalStatus": "approved"},
        context,
    )
    return vehicle


@router.post("/{vehicle_id}/reject", response_model=Vehicle)
async def reject_vehicle(
    vehicle_id: str,
    background_tasks: BackgroundTasks,
    admin: IdentityClaim = Depends(require_admin),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> Vehicle:
    vehicle = workflow.reject(vehicle_id, admin)
    background_tasks.add_task(
        _record_history,
        audit,
        vehicle_id,
        admin.id,
        "REJECT_VEHICLE",
        "REJECT",
        {"make": vehicle.make, "model": vehicle.model},
        {"approvalStatus": "rejected"},
        context,
    )
    return vehicle


@router.get("/{vehicle_id}/history", response_model=List[VehicleHistoryEntry])
async def vehicle_history(
    vehicle_id: str,
    _: IdentityClaim = Depends(require_auth),
    audit: ActivityLogger = Depends(get_audit),
) -> List[VehicleHistoryEntry]:
    return audit.list_by_resource(vehicle_id)

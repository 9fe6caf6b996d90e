"""
Vehicle approval workflow.

    pending  -> approved   (admin)
    pending  -> rejected   (admin)
    rejected -> pending    (owner or admin, via request_approval)
    approved -> *          (admin only, via set_approval_status)

The workflow holds no state of its own; ordering between concurrent
transitions on the same vehicle is left to the store.
"""

from __future__ import annotations

from typing import Dict

from ..auth.models import IdentityClaim, is_admin, utcnow
from ..core.exceptions import Forbidden, InvalidTransition
from ..core.logger import get_logger
from .models import ApprovalStatus, Vehicle
from .store import VehicleStore

logger = get_logger(__name__)

REQUESTABLE_STATES = frozenset({ApprovalStatus.PENDING, ApprovalStatus.REJECTED})


def is_owner_or_admin(vehicle: Vehicle, actor: IdentityClaim) -> bool:
    return vehicle.created_by == actor.id or is_admin(actor.role)


def can_request_approval(vehicle: Vehicle, actor: IdentityClaim) -> bool:
    return is_owner_or_admin(vehicle, actor) and vehicle.approval_status in REQUESTABLE_STATES


def _approval_fields(new_status: ApprovalStatus, actor: IdentityClaim) -> Dict[str, object]:
    if new_status is ApprovalStatus.PENDING:
        return {"approval_status": new_status, "approved_by": None, "approved_at": None}
    if new_status in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
        return {"approval_status": new_status, "approved_by": actor.id, "approved_at": utcnow()}
    raise ValueError(f"Unhandled approval status: {new_status!r}")


class ApprovalWorkflow:
    def __init__(self, store: VehicleStore):
        self.store = store

    def request_approval(self, vehicle_id: str, actor: IdentityClaim) -> Vehicle:
        """
        Put a listing (back) in the moderation queue.

        Raises:
            NotFound: unknown vehicle
            Forbidden: actor is neither the creator nor an admin
            InvalidTransition: listing is already approved
        """
        vehicle = self.store.require(vehicle_id)
        if not is_owner_or_admin(vehicle, actor):
            raise Forbidden("Only the vehicle owner or an admin can request approval")
        if vehicle.approval_status not in REQUESTABLE_STATES:
            raise InvalidTransition("Vehicle is already approved")
        updated = self.store.update(
            vehicle_id,
            {
                "approval_status": ApprovalStatus.PENDING,
                "approved_by": None,
                "approved_at": None,
                "approval_requested_at": utcnow(),
            },
        )
        logger.info("Approval requested", vehicle_id=vehicle_id, user_id=actor.id)
        return updated

    def set_approval_status(
        self, vehicle_id: str, actor: IdentityClaim, new_status: ApprovalStatus
    ) -> Vehicle:
        """Admin-only; any target state is allowed."""
        if not is_admin(actor.role):
            raise Forbidden("Only admins can change approval status")
        self.store.require(vehicle_id)
        updated = self.store.update(vehicle_id, _approval_fields(ApprovalStatus(new_status), actor))
        logger.info(
            "Approval status changed",
            vehicle_id=vehicle_id,
            user_id=actor.id,
            approval_status=updated.approval_status.value,
        )
        return updated

    def approve(self, vehicle_id: str, actor: IdentityClaim) -> Vehicle:
        return self.set_approval_status(vehicle_id, actor, ApprovalStatus.APPROVED)

    def reject(self, vehicle_id: str, actor: IdentityClaim) -> Vehicle:
        return self.set_approval_status(vehicle_id, actor, ApprovalStatus.REJECTED)

from .models import ApprovalStatus, Vehicle, VehicleStatus
from .store import VehicleStore
from .workflow import ApprovalWorkflow

__all__ = [
    "ApprovalStatus",
    "ApprovalWorkflow",
    "Vehicle",
    "VehicleStatus",
    "VehicleStore",
]

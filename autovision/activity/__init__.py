from .logger import ActivityLogger, diff_fields
from .models import ActivityLogEntry, RecordResult, RequestContext, VehicleHistoryEntry
from .store import ActivityStore

__all__ = [
    "ActivityLogEntry",
    "ActivityLogger",
    "ActivityStore",
    "RecordResult",
    "RequestContext",
    "VehicleHistoryEntry",
    "diff_fields",
]

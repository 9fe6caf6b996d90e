"""
Best-effort activity and vehicle-history trail.

Writes never raise: a failing store is logged and reported through the
returned RecordResult, so audit problems cannot block or mask the
operation being audited. Reads return newest first; a failing store reads
as an empty trail.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..core.logger import get_logger
from .models import (
    ActivityLogEntry,
    RecordResult,
    RequestContext,
    VehicleHistoryEntry,
)
from .store import ActivityStore

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 50


def diff_fields(before: Dict[str, Any], after: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Field-level before/after for every key in after whose value changed."""
    return {
        key: {"from": before.get(key), "to": value}
        for key, value in after.items()
        if before.get(key) != value
    }


def _newest_first(entries):
    # Reverse first so equal timestamps keep append order, newest first
    return sorted(reversed(entries), key=lambda e: e.created_at, reverse=True)


class ActivityLogger:
    def __init__(self, store: ActivityStore):
        self.store = store

    def record(
        self,
        actor_id: str,
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        detail: Optional[Any] = None,
        request_context: Optional[RequestContext] = None,
    ) -> RecordResult:
        context = request_context or RequestContext()
        entry = ActivityLogEntry(
            user_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=detail,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        try:
            self.store.append_activity(entry)
        except Exception as e:  # audit writes must never reach the caller
            logger.error(
                "Error logging activity",
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                error=str(e),
            )
            return RecordResult(ok=False, error=str(e))
        return RecordResult(ok=True, entry=entry)

    def record_field_change(
        self,
        resource_id: str,
        actor_id: str,
        action: str,
        changes: Optional[Dict[str, Any]] = None,
    ) -> RecordResult:
        entry = VehicleHistoryEntry(
            vehicle_id=resource_id,
            user_id=actor_id,
            action=action,
            changes=changes,
        )
        try:
            self.store.append_history(entry)
        except Exception as e:  # audit writes must never reach the caller
            logger.error(
                "Error logging vehicle history",
                vehicle_id=resource_id,
                action=action,
                error=str(e),
            )
            return RecordResult(ok=False, error=str(e))
        return RecordResult(ok=True, entry=entry)

    def list_by_user(self, actor_id: str, limit: int = DEFAULT_LIST_LIMIT) -> List[ActivityLogEntry]:
        try:
            entries = self.store.activity_for_user(actor_id)
        except Exception as e:
            logger.error("Error fetching user activity logs", user_id=actor_id, error=str(e))
            return []
        return _newest_first(entries)[:limit]

    def list_by_resource(self, resource_id: str) -> List[VehicleHistoryEntry]:
        try:
            entries = self.store.history_for_vehicle(resource_id)
        except Exception as e:
            logger.error("Error fetching vehicle history", vehicle_id=resource_id, error=str(e))
            return []
        return _newest_first(entries)

"""Audit trail records. Entries are immutable once written."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..auth.models import utcnow


class _Entry(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class RequestContext(_Entry):
    """Where a request came from."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ActivityLogEntry(_Entry):
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    details: Optional[Any] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class VehicleHistoryEntry(_Entry):
    id: str = Field(default_factory=lambda: str(uuid4()))
    vehicle_id: str
    user_id: str
    action: str
    changes: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utcnow)


class RecordResult(BaseModel):
    """
    Outcome of a best-effort audit write. Callers are free to ignore it;
    a failed write never raises.
    """

    ok: bool
    entry: Optional[Union[ActivityLogEntry, VehicleHistoryEntry]] = None
    error: Optional[str] = None

"""
Append-only audit persistence:
    <data_dir>/activity_logs.json
    <data_dir>/vehicle_history.json
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..core.storage import JsonDocument
from .models import ActivityLogEntry, VehicleHistoryEntry


class ActivityStore:
    def __init__(self, data_dir: Path):
        self._activity = JsonDocument(Path(data_dir) / "activity_logs.json")
        self._history = JsonDocument(Path(data_dir) / "vehicle_history.json")

    def append_activity(self, entry: ActivityLogEntry) -> None:
        with self._activity.update() as doc:
            doc.setdefault("entries", []).append(entry.model_dump(mode="json"))

    def append_history(self, entry: VehicleHistoryEntry) -> None:
        with self._history.update() as doc:
            doc.setdefault("entries", []).append(entry.model_dump(mode="json"))

    def activity_for_user(self, user_id: str) -> List[ActivityLogEntry]:
        items = self._activity.load().get("entries", [])
        return [ActivityLogEntry(**item) for item in items if item.get("user_id") == user_id]

    def history_for_vehicle(self, vehicle_id: str) -> List[VehicleHistoryEntry]:
        items = self._history.load().get("entries", [])
        return [VehicleHistoryEntry(**item) for item in items if item.get("vehicle_id") == vehicle_id]

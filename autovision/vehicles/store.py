"""
Vehicle persistence in <data_dir>/vehicles.json.

Listing shows only approved vehicles unless an approval filter is given.
Ordering across concurrent writers is last-writer-wins per record.
"""

from __future__ import annotations

import re
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..auth.models import utcnow
from ..core.exceptions import NotFound, ValidationFailed
from ..core.storage import JsonDocument
from .models import ApprovalStatus, Vehicle, VehicleCreate, VehicleFilters, VehicleStatus


def _price_value(price: str) -> Optional[float]:
    cleaned = re.sub(r"[^0-9.]", "", price or "")
    try:
        return float(cleaned)
    except ValueError:
        return None


def _matches(vehicle: Vehicle, filters: VehicleFilters) -> bool:
    if filters.approval_status is not None:
        if vehicle.approval_status != filters.approval_status:
            return False
    elif vehicle.approval_status != ApprovalStatus.APPROVED:
        return False
    if filters.status is not None and vehicle.status != filters.status:
        return False
    if filters.make and filters.make.lower() not in vehicle.make.lower():
        return False
    if filters.model and filters.model.lower() not in vehicle.model.lower():
        return False
    if filters.color and filters.color.lower() not in vehicle.color.lower():
        return False
    if filters.min_year is not None and vehicle.fabricate_year < filters.min_year:
        return False
    if filters.max_year is not None and vehicle.fabricate_year > filters.max_year:
        return False
    if filters.min_km is not None and vehicle.km < filters.min_km:
        return False
    if filters.max_km is not None and vehicle.km > filters.max_km:
        return False
    if filters.min_price is not None or filters.max_price is not None:
        price = _price_value(vehicle.price)
        if price is None:
            return False
        if filters.min_price is not None and price < filters.min_price:
            return False
        if filters.max_price is not None and price > filters.max_price:
            return False
    if filters.search:
        needle = filters.search.lower()
        haystack = " ".join(
            [vehicle.make, vehicle.model, vehicle.color, vehicle.license_plate or ""]
        ).lower()
        if needle not in haystack:
            return False
    return True


class VehicleStore:
    def __init__(self, data_dir: Path):
        self._doc = JsonDocument(Path(data_dir) / "vehicles.json")

    def _load(self) -> List[Vehicle]:
        return [Vehicle(**item) for item in self._doc.load().get("vehicles", [])]

    def get(self, vehicle_id: str) -> Optional[Vehicle]:
        return next((v for v in self._load() if v.id == vehicle_id), None)

    def require(self, vehicle_id: str) -> Vehicle:
        vehicle = self.get(vehicle_id)
        if vehicle is None:
            raise NotFound("Vehicle not found")
        return vehicle

    def create(self, data: VehicleCreate, created_by: str) -> Vehicle:
        """New listings always start pending approval."""
        vehicle = Vehicle(
            **data.model_dump(),
            approval_status=ApprovalStatus.PENDING,
            created_by=created_by,
        )
        with self._doc.update() as doc:
            doc.setdefault("vehicles", []).append(vehicle.model_dump(mode="json"))
        return vehicle

    def add(self, vehicle: Vehicle) -> Vehicle:
        """Insert a fully formed record as given."""
        with self._doc.update() as doc:
            doc.setdefault("vehicles", []).append(vehicle.model_dump(mode="json"))
        return vehicle

    def update(self, vehicle_id: str, changes: Dict[str, Any]) -> Vehicle:
        """Apply field changes (snake_case names) and bump updated_at."""
        with self._doc.update() as doc:
            items = doc.setdefault("vehicles", [])
            for i, item in enumerate(items):
                if item.get("id") != vehicle_id:
                    continue
                current = Vehicle(**item)
                updated = current.model_copy(update={**changes, "updated_at": utcnow()})
                # Re-validate so enum strings and datetimes are normalized
                try:
                    updated = Vehicle(**updated.model_dump())
                except ValidationError as e:
                    fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
                    raise ValidationFailed(f"Invalid vehicle fields: {fields}") from e
                items[i] = updated.model_dump(mode="json")
                return updated
        raise NotFound("Vehicle not found")

    def delete(self, vehicle_id: str) -> None:
        with self._doc.update() as doc:
            items = doc.setdefault("vehicles", [])
            remaining = [item for item in items if item.get("id") != vehicle_id]
            if len(remaining) == len(items):
                raise NotFound("Vehicle not found")
            doc["vehicles"] = remaining

    def list(self, filters: VehicleFilters) -> Tuple[List[Vehicle], int]:
        matched = [v for v in self._load() if _matches(v, filters)]
        matched.sort(key=lambda v: v.created_at, reverse=True)
        start = (filters.page - 1) * filters.limit
        return matched[start:start + filters.limit], len(matched)

    def pending(self) -> List[Vehicle]:
        items = [v for v in self._load() if v.approval_status == ApprovalStatus.PENDING]
        items.sort(key=lambda v: v.created_at, reverse=True)
        return items

    def find_many(self, vehicle_ids: List[str]) -> List[Vehicle]:
        """Known vehicles in request order; unknown and repeated ids are skipped."""
        by_id = {v.id: v for v in self._load()}
        found: List[Vehicle] = []
        seen = set()
        for vehicle_id in vehicle_ids:
            if vehicle_id in by_id and vehicle_id not in seen:
                seen.add(vehicle_id)
                found.append(by_id[vehicle_id])
        return found

    def summary(self) -> Dict[str, Any]:
        """Dashboard totals; averagePrice skips prices that do not parse."""
        vehicles = self._load()
        by_status = Counter(v.status for v in vehicles)
        prices = [p for p in (_price_value(v.price) for v in vehicles) if p is not None]
        return {
            "totalVehicles": len(vehicles),
            "availableVehicles": by_status[VehicleStatus.AVAILABLE],
            "reservedVehicles": by_status[VehicleStatus.RESERVED],
            "soldVehicles": by_status[VehicleStatus.SOLD],
            "averagePrice": round(sum(prices) / len(prices), 2) if prices else 0,
        }

    def count_by_status(self) -> List[Dict[str, Any]]:
        counts = Counter(v.status for v in self._load())
        return [{"status": s.value, "count": counts[s]} for s in VehicleStatus]

    def sales_by_month(self) -> List[Dict[str, Any]]:
        """Sold vehicles per month of their last update, oldest month first."""
        months = Counter(
            v.updated_at.strftime("%Y-%m") for v in self._load() if v.status is VehicleStatus.SOLD
        )
        return [{"month": month, "sales": months[month]} for month in sorted(months)]

    def stats(self) -> Dict[str, Any]:
        vehicles = self._load()
        by_status = Counter(v.status.value for v in vehicles)
        by_approval = Counter(v.approval_status.value for v in vehicles)
        brands = Counter(v.make for v in vehicles)
        return {
            "total": len(vehicles),
            "byStatus": dict(by_status),
            "byApprovalStatus": dict(by_approval),
            "brands": [{"make": make, "count": count} for make, count in brands.most_common()],
        }

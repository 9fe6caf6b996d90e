"""
Dashboard statistics. Prefix: /api/stats
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from autovision.auth.models import IdentityClaim
from autovision.vehicles import VehicleStore

from .auth_middleware import require_auth
from .deps import get_vehicles

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("")
async def summary(
    _: IdentityClaim = Depends(require_auth),
    store: VehicleStore = Depends(get_vehicles),
) -> Dict[str, Any]:
    return store.summary()


@router.get("/vehicles-by-status")
async def vehicles_by_status(
    _: IdentityClaim = Depends(require_auth),
    store: VehicleStore = Depends(get_vehicles),
) -> List[Dict[str, Any]]:
    return store.count_by_status()


@router.get("/sales")
async def sales(
    _: IdentityClaim = Depends(require_auth),
    store: VehicleStore = Depends(get_vehicles),
) -> List[Dict[str, Any]]:
    return store.sales_by_month()

"""
Vehicle records.

status (commercial) and approval_status (moderation) are independent
axes: every combination is a valid record and is stored as given.
JSON uses camelCase field names (approvalStatus, fabricateYear, ...).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..auth.models import utcnow


class VehicleStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransmissionType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    CVT = "cvt"
    SEMI_AUTOMATIC = "semi_automatic"


class FuelType(str, Enum):
    GASOLINE = "gasoline"
    ETHANOL = "ethanol"
    FLEX = "flex"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )


class VehicleCreate(_CamelModel):
    make: str = Field(min_length=1, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    fabricate_year: int = Field(ge=1900, le=2100)
    model_year: int = Field(ge=1900, le=2100)
    color: str = Field(min_length=1, max_length=50)
    km: int = Field(ge=0)
    price: str = Field(min_length=1, max_length=20)
    transmission_type: TransmissionType = TransmissionType.MANUAL
    fuel_type: FuelType = FuelType.FLEX
    license_plate: Optional[str] = Field(default=None, max_length=10)
    status: VehicleStatus = VehicleStatus.AVAILABLE
    description: Optional[str] = None


class VehicleUpdate(_CamelModel):
    """Partial update. Only fields present in the request are applied."""

    make: Optional[str] = Field(default=None, min_length=1, max_length=100)
    model: Optional[str] = Field(default=None, min_length=1, max_length=100)
    fabricate_year: Optional[int] = Field(default=None, ge=1900, le=2100)
    model_year: Optional[int] = Field(default=None, ge=1900, le=2100)
    color: Optional[str] = Field(default=None, min_length=1, max_length=50)
    km: Optional[int] = Field(default=None, ge=0)
    price: Optional[str] = Field(default=None, min_length=1, max_length=20)
    transmission_type: Optional[TransmissionType] = None
    fuel_type: Optional[FuelType] = None
    license_plate: Optional[str] = Field(default=None, max_length=10)
    status: Optional[VehicleStatus] = None
    description: Optional[str] = None
    approval_status: Optional[ApprovalStatus] = None


class Vehicle(_CamelModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    make: str
    model: str
    fabricate_year: int
    model_year: int
    color: str
    km: int
    price: str
    transmission_type: TransmissionType = TransmissionType.MANUAL
    fuel_type: FuelType = FuelType.FLEX
    license_plate: Optional[str] = None
    status: VehicleStatus = VehicleStatus.AVAILABLE
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    description: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list, alias="imageURLs")
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    approval_requested_at: Optional[datetime] = None
    registration_date: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class VehicleFilters(_CamelModel):
    make: Optional[str] = None
    model: Optional[str] = None
    status: Optional[VehicleStatus] = None
    approval_status: Optional[ApprovalStatus] = None
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_km: Optional[int] = None
    max_km: Optional[int] = None
    color: Optional[str] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class VehiclePage(BaseModel):
    vehicles: List[Vehicle]
    total: int

"""
Service wiring for the HTTP layer.

create_app() builds one Services bundle and parks it on app.state; route
dependencies read it from there, so tests can hand in their own bundle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from autovision.activity import ActivityLogger, ActivityStore, RequestContext
from autovision.auth.service import UserDirectory
from autovision.auth.tokens import TokenService
from autovision.core.config import Settings
from autovision.vehicles import ApprovalWorkflow, VehicleStore


@dataclass
class Services:
    settings: Settings
    tokens: TokenService
    users: UserDirectory
    vehicles: VehicleStore
    workflow: ApprovalWorkflow
    audit: ActivityLogger


def build_services(settings: Settings, activity_store: Optional[ActivityStore] = None) -> Services:
    vehicles = VehicleStore(settings.data_dir)
    return Services(
        settings=settings,
        tokens=TokenService.from_settings(settings),
        users=UserDirectory(settings.data_dir, bcrypt_rounds=settings.bcrypt_rounds),
        vehicles=vehicles,
        workflow=ApprovalWorkflow(vehicles),
        audit=ActivityLogger(activity_store or ActivityStore(settings.data_dir)),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_token_service(services: Services = Depends(get_services)) -> TokenService:
    return services.tokens


def get_users(services: Services = Depends(get_services)) -> UserDirectory:
    return services.users


def get_vehicles(services: Services = Depends(get_services)) -> VehicleStore:
    return services.vehicles


def get_workflow(services: Services = Depends(get_services)) -> ApprovalWorkflow:
    return services.workflow


def get_audit(services: Services = Depends(get_services)) -> ActivityLogger:
    return services.audit


def request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

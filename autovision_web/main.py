"""
Autovision FastAPI application factory.

    uvicorn autovision_web.main:create_app --factory
"""

from __future__ import annotations

import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from autovision import __version__
from autovision.activity import ActivityStore
from autovision.core.config import Settings, get_settings
from autovision.core.exceptions import AutovisionError, Unauthenticated
from autovision.core.logger import get_logger, setup_logging

from . import auth_routes, stats_routes, user_routes, vehicle_routes
from .deps import Services, build_services

logger = get_logger(__name__)


class RequestLoggingASGI:
    """
    Raw ASGI request logger; avoids BaseHTTPMiddleware's request stream
    wrapping. Logs method, path, status, duration and the authenticated
    user id when the auth dependency set one.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http" or not (scope.get("path") or "").startswith("/api"):
            await self.app(scope, receive, send)
            return

        scope.setdefault("state", {})
        start = time.perf_counter()
        status_holder = {"status": 500}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                status_holder["status"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            status_code = status_holder["status"]
            identity = scope["state"].get("identity")
            fields = {
                "method": scope.get("method"),
                "path": scope.get("path"),
                "status_code": status_code,
                "duration_ms": round((time.perf_counter() - start) * 1000, 1),
                "user_id": getattr(identity, "id", None),
            }
            if status_code >= 500:
                logger.error("API request", **fields)
            elif status_code >= 400:
                logger.warning("API request", **fields)
            else:
                logger.info("API request", **fields)


async def autovision_error_handler(request: Request, exc: AutovisionError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[Services] = None,
    activity_store: Optional[ActivityStore] = None,
) -> FastAPI:
    settings = settings or (services.settings if services else get_settings())
    setup_logging(settings.log_level, settings.log_file or None)

    services = services or build_services(settings, activity_store=activity_store)
    services.users.ensure_seed_admin(settings)

    app = FastAPI(
        title="Autovision API",
        description="Dealership inventory, approvals and audit trail",
        version=__version__,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingASGI)
    app.add_exception_handler(AutovisionError, autovision_error_handler)

    app.include_router(auth_routes.router)
    app.include_router(user_routes.router)
    app.include_router(user_routes.profile_router)
    app.include_router(vehicle_routes.router)
    app.include_router(stats_routes.router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    logger.info("Autovision app created", environment=settings.environment, data_dir=str(settings.data_dir))
    return app

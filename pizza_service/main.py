"""FastAPI application entrypoint."""
from __future__ import annotations

from contextlib import asynccontextmanager
import time
from uuid import uuid4

from fastapi import FastAPI
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pizza_service.api.error_handlers import register_exception_handlers
from pizza_service.api.router import api_router
from pizza_service.core.config import Settings, get_settings
from pizza_service.core.logging import configure_logging
from pizza_service.core.request_context import bind_request_id, release_request_id
from pizza_service.metrics.hooks import MetricsRecorder
from pizza_service.services import ServiceRegistry

# Auth layers store the authenticated user's id under this request.state key.
USER_ID_STATE_KEY = "user_id"


def _recorder_for(scope: Scope) -> MetricsRecorder | None:
    app = scope.get("app")
    registry = getattr(getattr(app, "state", None), "services", None)
    if isinstance(registry, ServiceRegistry):
        return registry.aggregator
    return None


class RequestMetricsMiddleware:
    """Count every HTTP request, time it and refresh the caller's activity."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        token = bind_request_id(request_id)
        recorder = _recorder_for(scope)
        if recorder is not None:
            recorder.record_request(scope.get("method"))
        start = time.perf_counter()

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            if recorder is not None:
                duration_ms = int((time.perf_counter() - start) * 1000)
                recorder.record_latency(duration_ms)
                user_id = scope.get("state", {}).get(USER_ID_STATE_KEY)
                if user_id:
                    recorder.touch_activity(user_id)
            release_request_id(token)


def create_app(settings: Settings | None = None, *, registry: ServiceRegistry | None = None) -> FastAPI:
    """Build the application around one service registry."""

    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage startup and shutdown of background services."""

        services = registry or ServiceRegistry(settings)
        app.state.services = services

        await services.startup()
        try:
            yield
        finally:
            await services.shutdown()

    app = FastAPI(
        title="JWT Pizza Service",
        description="Pizza ordering backend with OTLP metrics reporting",
        version=settings.metrics.service_version,
        lifespan=lifespan,
    )
    app.add_middleware(RequestMetricsMiddleware)
    app.include_router(api_router)
    register_exception_handlers(app)
    return app


app = create_app()

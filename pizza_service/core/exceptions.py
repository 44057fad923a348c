"""Common exception helpers for the backend services."""
from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base exception for application specific errors."""

    status_code = 500
    error_code = "app_error"
    default_detail = "An unexpected error occurred."

    def __init__(self, detail: str | None = None, *, extra: dict[str, Any] | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail
        self.extra = extra or {}


class ServiceError(AppError):
    """Raised when a background service fails."""

    error_code = "service_error"

    def __init__(self, service_name: str, detail: str | None = None, *, extra: dict[str, Any] | None = None) -> None:
        self.service_name = service_name
        message = detail or f"{service_name} failed"
        payload = {"service": service_name}
        if extra:
            payload.update(extra)
        super().__init__(message, extra=payload)


class MetricsError(ServiceError):
    """Failure inside a metrics reporting cycle. Never reaches request handlers."""

    error_code = "metrics_error"

    def __init__(self, detail: str | None = None, *, extra: dict[str, Any] | None = None) -> None:
        super().__init__("metrics-reporter", detail, extra=extra)


class MetricsEncodingError(MetricsError):
    error_code = "metrics_encoding_error"


class MetricsDeliveryError(MetricsError):
    """The collector rejected the payload or could not be reached."""

    error_code = "metrics_delivery_error"

    def __init__(self, detail: str | None = None, *, status: int | None = None, body: str | None = None) -> None:
        self.status = status
        self.body = body
        extra: dict[str, Any] = {}
        if status is not None:
            extra["status"] = status
        super().__init__(detail, extra=extra)


class DomainError(AppError):
    """Normalized domain error surfaced to API handlers."""


class UnauthorizedError(DomainError):
    status_code = 401
    error_code = "unauthorized"
    default_detail = "Unauthorized."


class ServiceUnavailableError(DomainError):
    status_code = 503
    error_code = "service_unavailable"
    default_detail = "Service unavailable."

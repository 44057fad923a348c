"""FastAPI dependency providers."""
import hmac

from fastapi import Depends, Request

from pizza_service.core.exceptions import ServiceUnavailableError, UnauthorizedError
from pizza_service.metrics.aggregator import MetricAggregator
from pizza_service.metrics.hooks import MetricsRecorder
from pizza_service.metrics.reporter import MetricsReporter
from pizza_service.services.registry import ServiceRegistry


def get_service_registry(request: Request) -> ServiceRegistry:
    """Return the service registry stored on the FastAPI application state."""

    registry = getattr(request.app.state, "services", None)
    if not isinstance(registry, ServiceRegistry):
        raise ServiceUnavailableError("Service registry not initialised")
    return registry


def get_metric_aggregator(registry: ServiceRegistry = Depends(get_service_registry)) -> MetricAggregator:
    return registry.aggregator


def get_metrics_recorder(registry: ServiceRegistry = Depends(get_service_registry)) -> MetricsRecorder:
    """Recording hooks for auth, order and logout handlers."""
    return registry.aggregator


def get_metrics_reporter(registry: ServiceRegistry = Depends(get_service_registry)) -> MetricsReporter:
    return registry.reporter


def require_api_token(
    request: Request,
    registry: ServiceRegistry = Depends(get_service_registry),
) -> None:
    """Guard operational endpoints when an API token is configured."""

    token = registry.settings.api_token
    if not token:
        return

    auth_header = request.headers.get("authorization", "")
    api_key = request.headers.get("x-api-key", "")
    provided = ""
    if auth_header.lower().startswith("bearer "):
        provided = auth_header[7:].strip()
    elif api_key:
        provided = api_key.strip()
    if not provided:
        raise UnauthorizedError("Missing API token")
    if not hmac.compare_digest(provided, token):
        raise UnauthorizedError("Invalid API token")

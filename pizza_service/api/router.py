"""Root API router that aggregates all endpoint modules."""
from fastapi import APIRouter

from pizza_service.api.routes import health, metrics

api_router = APIRouter(prefix="/api")
api_router.include_router(health.router, tags=["health"])
api_router.include_router(metrics.router, tags=["metrics"])

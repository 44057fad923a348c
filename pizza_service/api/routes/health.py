"""Health check endpoint."""
from fastapi import APIRouter, Depends

from pizza_service.api.dependencies import get_metrics_reporter
from pizza_service.metrics.reporter import MetricsReporter

router = APIRouter()


@router.get("/health", summary="Health probe")
async def health_check(reporter: MetricsReporter = Depends(get_metrics_reporter)) -> dict:
    return {
        "status": "ok",
        "reporter": reporter.status(),
    }

"""Metrics endpoint for operational visibility."""
from fastapi import APIRouter, Depends

from pizza_service.api.dependencies import get_metric_aggregator, require_api_token
from pizza_service.metrics.aggregator import MetricAggregator

router = APIRouter()


@router.get(
    "/metrics",
    summary="Return the current metrics snapshot",
    dependencies=[Depends(require_api_token)],
)
def read_metrics(aggregator: MetricAggregator = Depends(get_metric_aggregator)) -> dict:
    return {
        "metrics": aggregator.snapshot().as_dict(),
    }

"""Service registry that wires the metrics services together."""
import asyncio
import logging
from typing import Optional

from pizza_service.core.config import Settings
from pizza_service.core.request_context import request_context
from pizza_service.core.tasks import LifecycleManager
from pizza_service.metrics.aggregator import MetricAggregator
from pizza_service.metrics.otel import OtelEncoder
from pizza_service.metrics.reporter import MetricsReporter, Sender
from pizza_service.metrics.system import SystemSampler

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Container object for dependency injection.

    Owns the single aggregator for the process; request handlers and the
    reporter both receive it from here.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        sampler: Optional[SystemSampler] = None,
        sender: Optional[Sender] = None,
    ) -> None:
        self.settings = settings
        self.aggregator = MetricAggregator.from_config(settings.metrics, sampler=sampler)
        self.encoder = OtelEncoder.from_config(settings.metrics)
        self.reporter = MetricsReporter(
            self.aggregator,
            self.encoder,
            settings.metrics,
            sender=sender,
        )
        self._startup_lock = asyncio.Lock()
        self._shutdown_lock = asyncio.Lock()
        self._lifecycle = LifecycleManager(name="service-registry", logger=logger)

    @property
    def started(self) -> bool:
        return self._lifecycle.started

    async def startup(self) -> None:
        async with self._startup_lock:
            with request_context("bg:registry"):
                logger.info("Starting background services")
                await self._lifecycle.start([self.reporter.start])
                logger.info("Background services started")

    async def shutdown(self) -> None:
        async with self._shutdown_lock:
            with request_context("bg:registry"):
                logger.info("Stopping background services")
                await self._lifecycle.stop([self.reporter.stop])
                logger.info("Background services stopped")

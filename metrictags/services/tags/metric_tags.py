"""MetricTags - binds a metrics schema and keeps it flowing to an exporter.

Constructing a MetricTags binds every instrument field of the schema right
away. start() then runs a background task that samples runtime statistics on
their own cadences and calls the update handler every flush interval, until
stop() asks it to flush one last time and exit.

Synchronous update handlers and the runtime stat captures run in a worker
thread via asyncio.to_thread(); coroutine handlers are awaited on the loop.
"""

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, List, Optional, Union

from metrictags.core.config import settings
from metrictags.core.logging_config import get_logger
from metrictags.services.metrics.instance import get_default_registry
from metrictags.services.metrics.registry import IMetricsRegistry
from metrictags.services.metrics.runtime_stats import (
    register_gc_stats, register_memory_stats,
    capture_gc_stats_once, capture_memory_stats_once
)
from .binder import bind_metrics

logger = get_logger(__name__)

# Called every flush interval to push metrics onward; may be a coroutine function
MetricsUpdateHandler = Callable[[], Union[None, Awaitable[None]]]

STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_STOPPED = "stopped"


class MetricTags:
    """Owner of a bound metrics schema and its sampling loop.

    Attributes:
        stats_gc_collection: Seconds between GC stat samples
        stats_mem_collection: Seconds between memory stat samples
        now_handler: Clock used for the sampling cadences (overridable in tests)
        bound_names: Names registered while binding, in registration order
    """

    def __init__(
        self,
        metrics_data: Any,
        update_handler: MetricsUpdateHandler,
        flush_interval: float,
        registry: Optional[IMetricsRegistry] = None,
        separator: Optional[str] = None,
    ):
        """Bind metrics_data and prepare the sampling loop.

        Args:
            metrics_data: Dataclass or pydantic model instance holding instrument fields
            update_handler: Zero-argument callable invoked every flush_interval
            flush_interval: Seconds between update_handler calls
            registry: Registry to bind into (default: the process-wide default registry)
            separator: Name separator (default: settings.METRICS_SEPARATOR)
        """
        self.metrics_data = metrics_data
        self.update_handler = update_handler
        self.flush_interval = flush_interval
        self.registry = registry if registry is not None else get_default_registry()
        self.separator = separator if separator is not None else settings.METRICS_SEPARATOR

        self.stats_gc_collection: float = settings.METRICS_STATS_GC_INTERVAL
        self.stats_mem_collection: float = settings.METRICS_STATS_MEM_INTERVAL
        self.now_handler: Callable[[], float] = time.monotonic

        self.state = STATE_IDLE
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._stopped_event = asyncio.Event()

        # Initialize metric fields
        self.bound_names: List[str] = bind_metrics(metrics_data, "", self.separator, self.registry)
        logger.info(f"Bound {len(self.bound_names)} metrics from {type(metrics_data).__name__}")

    @property
    def is_running(self) -> bool:
        return self.state == STATE_RUNNING

    def snapshot(self) -> bytes:
        """All registered metrics serialized as JSON."""
        return self.registry.to_json()

    async def _flush(self) -> None:
        try:
            handler = self.update_handler
            if inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(getattr(handler, "__call__", None)):
                await handler()
                return
            # Plain callables may block on I/O, keep them off the event loop
            result = await asyncio.to_thread(handler)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Error in metrics update handler: {e}")

    async def _capture(self, capture: Callable[[IMetricsRegistry, str], None], category: str) -> None:
        try:
            await asyncio.to_thread(capture, self.registry, self.separator)
        except Exception as e:
            logger.error(f"Error capturing {category} runtime stats: {e}")

    async def run(self) -> None:
        """Sampling loop: sample runtime stats and flush until stop() is called."""
        try:
            # Register the runtime stats collectors once
            register_gc_stats(self.registry, self.separator)
            register_memory_stats(self.registry, self.separator)

            self.state = STATE_RUNNING
            logger.info(f"Metrics sampling started, flushing every {self.flush_interval}s")

            update_time = self.now_handler()
            gc_time, mem_time = update_time, update_time
            while True:
                now = self.now_handler()
                if now - gc_time > self.stats_gc_collection:
                    await self._capture(capture_gc_stats_once, "GC")
                    gc_time = now
                if now - mem_time > self.stats_mem_collection:
                    await self._capture(capture_memory_stats_once, "memory")
                    mem_time = now

                try:
                    # Wait for the flush interval or until stop is requested
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.flush_interval)
                except asyncio.TimeoutError:
                    await self._flush()
                    continue

                # Flush one last time so the final window is not lost
                await self._flush()
                break
        finally:
            self.state = STATE_STOPPED
            self._stopped_event.set()

        logger.info("Metrics sampling stopped")

    def start(self) -> asyncio.Task:
        """Start the sampling loop as a background task on the running event loop."""
        if self._task is not None:
            logger.warning("Metrics sampling already started")
            return self._task

        self._task = asyncio.create_task(self.run())
        logger.info("Metrics sampling task created")
        return self._task

    async def stop(self) -> None:
        """Ask the loop to stop and wait until its final flush has completed.

        Works whether the loop was started with start() or by scheduling run()
        directly, including when stop() follows before the loop took its first
        step. A loop task cancelled from outside is not waited on.
        """
        self._stop_event.set()
        if self.state == STATE_IDLE:
            # A freshly created loop task has not run yet
            await asyncio.sleep(0)

        if self.state == STATE_IDLE:
            self._stop_event.clear()
            if self._task is not None and self._task.cancelled():
                logger.warning("Metrics sampling task was cancelled before it started")
            else:
                logger.warning("Metrics sampling stop requested before start")
            return

        await self._stopped_event.wait()
        if self._task is not None and not self._task.cancelled():
            # Surface anything the loop raised outside the update handler
            await self._task

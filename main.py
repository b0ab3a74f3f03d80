"""
metric-tags demo host

Binds an example metrics schema, simulates some traffic and logs the JSON
snapshot on every flush until interrupted.

Environment Variables:
    METRICS_FLUSH_INTERVAL: Seconds between flushes (default: 10)
    METRICS_SEPARATOR: Separator between metric name segments (default: .)
    METRICS_STATS_GC_INTERVAL: Seconds between GC stat samples (default: 60)
    METRICS_STATS_MEM_INTERVAL: Seconds between memory stat samples (default: 300)
    LOG_LEVEL: Logging level (default: INFO)
    LOG_FILE: Optional rotating log file

CLI Usage:
    python main.py

    # Flush every second with underscore-separated names
    METRICS_FLUSH_INTERVAL=1 METRICS_SEPARATOR=_ python main.py
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Dict, Optional

from metrictags import Counter, Gauge, Histogram, Meter, MetricTags, MetricsRegistry, Timer
from metrictags.core.config import settings
from metrictags.core.logging_config import get_logger, setup_logging

logger = get_logger("metrictags.demo")


@dataclass
class TransportMetrics:
    latency: Optional[Timer] = field(default=None, metadata={"metric": "latency"})
    errors: Optional[Counter] = None


@dataclass
class ServerMetrics:
    requests: Optional[Meter] = None
    in_flight: Optional[Gauge] = field(default=None, metadata={"metric": "in_flight"})
    payload_bytes: Optional[Histogram] = field(default=None, metadata={"metric": "payload.bytes"})
    transports: Dict[str, TransportMetrics] = field(
        default_factory=lambda: {"smtp": TransportMetrics(), "http": TransportMetrics()}
    )
    hostname: str = "localhost"


async def simulate_traffic(metrics: ServerMetrics) -> None:
    """Generate fake requests against the bound instruments."""
    while True:
        transport = metrics.transports[random.choice(["smtp", "http"])]
        metrics.requests.mark()
        metrics.in_flight.update(random.randint(0, 20))
        metrics.payload_bytes.update(random.randint(200, 20_000))
        with transport.latency.time():
            await asyncio.sleep(random.uniform(0.001, 0.05))
        if random.random() < 0.05:
            transport.errors.inc()


async def main() -> None:
    registry = MetricsRegistry()
    metrics = ServerMetrics()

    def flush() -> None:
        logger.info(f"Metrics snapshot: {registry.to_json().decode('utf-8')}")

    tags = MetricTags(metrics, flush, settings.METRICS_FLUSH_INTERVAL, registry, settings.METRICS_SEPARATOR)
    tags.start()

    traffic = asyncio.create_task(simulate_traffic(metrics))
    try:
        await traffic
    finally:
        traffic.cancel()
        await tags.stop()


if __name__ == "__main__":
    setup_logging()
    print(f"Starting {settings.PROJECT_NAME} demo, flushing every {settings.METRICS_FLUSH_INTERVAL}s (Ctrl-C to stop)")

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass

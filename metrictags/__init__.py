"""metric-tags - bind nested metrics schemas to named instruments.

Declare metric fields on a dataclass or pydantic model, hand an instance to
MetricTags and update the populated instruments directly; a background task
samples runtime statistics and flushes snapshots on a fixed cadence.
"""

from metrictags.services.metrics import (
    Counter,
    Gauge,
    Meter,
    Histogram,
    Timer,
    IMetricsRegistry,
    MetricsRegistry,
    DuplicateMetricError,
    MetricsSnapshotModel,
    get_default_registry,
    set_default_registry,
)
from metrictags.services.tags import METRIC_TAG, MetricTags, MetricsUpdateHandler, bind_metrics

__version__ = "0.3.0"

__all__ = [
    "Counter",
    "Gauge",
    "Meter",
    "Histogram",
    "Timer",
    "IMetricsRegistry",
    "MetricsRegistry",
    "DuplicateMetricError",
    "MetricsSnapshotModel",
    "get_default_registry",
    "set_default_registry",
    "METRIC_TAG",
    "MetricTags",
    "MetricsUpdateHandler",
    "bind_metrics",
]

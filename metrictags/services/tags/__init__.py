"""Schema binding and the periodic sampling-and-flush loop."""

from .binder import bind_metrics, METRIC_TAG
from .metric_tags import MetricTags, MetricsUpdateHandler

__all__ = [
    "bind_metrics",
    "METRIC_TAG",
    "MetricTags",
    "MetricsUpdateHandler",
]

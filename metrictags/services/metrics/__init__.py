"""Metric instruments, registry and runtime statistics.

This package provides the in-memory instruments application code updates,
the registry that names and serializes them, and the process runtime
statistics sampled alongside them.
"""

from .instruments import Counter, Gauge, Meter, Histogram, Timer, INSTRUMENT_TYPES
from .registry import IMetricsRegistry, MetricsRegistry, DuplicateMetricError
from .instance import get_default_registry, set_default_registry
from .models import MetricsSnapshotModel

__all__ = [
    "Counter",
    "Gauge",
    "Meter",
    "Histogram",
    "Timer",
    "INSTRUMENT_TYPES",
    "IMetricsRegistry",
    "MetricsRegistry",
    "DuplicateMetricError",
    "get_default_registry",
    "set_default_registry",
    "MetricsSnapshotModel",
]

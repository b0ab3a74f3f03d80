"""Process runtime statistics for the metrics registry.

Two categories are sampled on independent cadences by the sampling loop:
garbage collector statistics (from the gc module) and memory statistics
(from psutil). Each category is stored as gauges under 'runtime.gc.*' and
'runtime.memory.*', plus a 'read_stats' timer measuring the capture itself.
"""

import gc
import sys
import threading
from typing import List, Optional

import psutil

from metrictags.core.logging_config import get_logger
from .instruments import Gauge, Timer
from .registry import IMetricsRegistry

logger = get_logger(__name__)

RUNTIME_PREFIX = "runtime"
GC_CATEGORY = "gc"
MEMORY_CATEGORY = "memory"

GC_GENERATION_STATS = ("collections", "collected", "uncollectable", "pending")
MEMORY_STATS = ("rss", "vms", "percent", "threads", "allocated_blocks", "objects")


def runtime_metric_name(separator: str, *segments: str) -> str:
    """Join runtime stat segments under the 'runtime' prefix."""
    return separator.join((RUNTIME_PREFIX,) + segments)


def gc_stat_names(separator: str = ".") -> List[str]:
    """Gauge names of the GC category, one set per collector generation."""
    names = [runtime_metric_name(separator, GC_CATEGORY, "collections")]
    for generation in range(len(gc.get_stats())):
        for stat in GC_GENERATION_STATS:
            names.append(runtime_metric_name(separator, GC_CATEGORY, f"gen{generation}", stat))
    return names


def memory_stat_names(separator: str = ".") -> List[str]:
    """Gauge names of the memory category."""
    return [runtime_metric_name(separator, MEMORY_CATEGORY, stat) for stat in MEMORY_STATS]


def _gauge(registry: IMetricsRegistry, name: str) -> Gauge:
    return registry.get_or_register(name, Gauge)


def register_gc_stats(registry: IMetricsRegistry, separator: str = ".") -> None:
    """Register the GC category instruments (idempotent)."""
    for name in gc_stat_names(separator):
        _gauge(registry, name)
    registry.get_or_register(runtime_metric_name(separator, GC_CATEGORY, "read_stats"), Timer)


def register_memory_stats(registry: IMetricsRegistry, separator: str = ".") -> None:
    """Register the memory category instruments (idempotent)."""
    for name in memory_stat_names(separator):
        _gauge(registry, name)
    registry.get_or_register(runtime_metric_name(separator, MEMORY_CATEGORY, "read_stats"), Timer)


def capture_gc_stats_once(registry: IMetricsRegistry, separator: str = ".") -> None:
    """Sample the garbage collector's per-generation counters into the registry."""
    timer = registry.get_or_register(runtime_metric_name(separator, GC_CATEGORY, "read_stats"), Timer)
    with timer.time():
        stats = gc.get_stats()
        pending = gc.get_count()

    total_collections = 0
    for generation, gen_stats in enumerate(stats):
        values = {
            "collections": gen_stats.get("collections", 0),
            "collected": gen_stats.get("collected", 0),
            "uncollectable": gen_stats.get("uncollectable", 0),
            "pending": pending[generation] if generation < len(pending) else 0,
        }
        total_collections += values["collections"]
        for stat, value in values.items():
            _gauge(registry, runtime_metric_name(separator, GC_CATEGORY, f"gen{generation}", stat)).update(value)

    _gauge(registry, runtime_metric_name(separator, GC_CATEGORY, "collections")).update(total_collections)
    logger.debug(f"GC stats: collections={total_collections}, pending={pending}")


def capture_memory_stats_once(
    registry: IMetricsRegistry,
    separator: str = ".",
    process: Optional[psutil.Process] = None,
) -> None:
    """Sample process memory statistics into the registry.

    Counting tracked objects walks every object the collector knows about,
    so this is the expensive capture.

    Args:
        registry: Registry to update
        separator: Name separator
        process: psutil process to inspect (default: the current process)
    """
    timer = registry.get_or_register(runtime_metric_name(separator, MEMORY_CATEGORY, "read_stats"), Timer)
    with timer.time():
        process = process or psutil.Process()
        memory = process.memory_info()
        values = {
            "rss": memory.rss,
            "vms": memory.vms,
            "percent": process.memory_percent(),
            "threads": threading.active_count(),
            "allocated_blocks": sys.getallocatedblocks(),
            "objects": len(gc.get_objects()),
        }

    for stat, value in values.items():
        _gauge(registry, runtime_metric_name(separator, MEMORY_CATEGORY, stat)).update(value)

    logger.debug(
        f"Memory stats: RSS={memory.rss / (1024 * 1024):.1f}MB, "
        f"Objects={values['objects']}, Threads={values['threads']}"
    )

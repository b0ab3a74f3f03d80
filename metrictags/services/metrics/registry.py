"""MetricsRegistry - name-keyed store of metric instruments.

The registry holds every registered instrument in memory and serializes them
into a MetricsSnapshotModel. It is shared by the binder, the sampling loop and
any snapshot consumer, so all mutations go through a lock.
"""

import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, Tuple

from metrictags.core.config import settings
from metrictags.core.logging_config import get_logger
from .instruments import INSTRUMENT_TYPES
from .models import MetricsSnapshotModel

logger = get_logger(__name__)

# Duplicate name policies
ON_DUPLICATE_REPLACE = "replace"
ON_DUPLICATE_REJECT = "reject"


class DuplicateMetricError(ValueError):
    """Raised by a 'reject' registry when a name is registered twice."""


class IMetricsRegistry(Protocol):
    """Protocol defining what the binder and sampling loop need from a registry."""

    def register(self, name: str, instrument: Any) -> None:
        """Register an instrument under a unique name.

        Args:
            name: Fully qualified metric name
            instrument: One of the supported instrument instances
        """
        ...

    def get_or_register(self, name: str, factory: Callable[[], Any]) -> Any:
        """Return the instrument registered under name, creating it with factory if absent."""
        ...

    def snapshot(self) -> MetricsSnapshotModel:
        """Get current readings of every registered instrument."""
        ...

    def to_json(self) -> bytes:
        """Get current readings serialized as JSON."""
        ...


class MetricsRegistry:
    """In-memory registry of named instruments.

    Duplicate registrations follow on_duplicate: 'replace' lets the last
    registration win (logged as a warning), 'reject' raises DuplicateMetricError
    and keeps the existing instrument.
    """

    def __init__(self, on_duplicate: Optional[str] = None):
        on_duplicate = (on_duplicate or settings.METRICS_ON_DUPLICATE).lower()
        if on_duplicate not in (ON_DUPLICATE_REPLACE, ON_DUPLICATE_REJECT):
            raise ValueError(
                f"Unknown duplicate policy: '{on_duplicate}'. "
                f"Available: {[ON_DUPLICATE_REPLACE, ON_DUPLICATE_REJECT]}"
            )
        self.on_duplicate = on_duplicate

        # Instruments keyed by fully qualified name, in registration order
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, name: str, instrument: Any) -> None:
        """Register an instrument under name.

        Raises:
            TypeError: if instrument is not a supported instrument
            DuplicateMetricError: if name is taken and the policy is 'reject'
        """
        if not isinstance(instrument, INSTRUMENT_TYPES):
            raise TypeError(f"Unsupported instrument type: {type(instrument).__name__}")

        with self._lock:
            if name in self._metrics:
                if self.on_duplicate == ON_DUPLICATE_REJECT:
                    raise DuplicateMetricError(f"Metric '{name}' is already registered")
                logger.warning(f"Metric '{name}' registered twice, replacing previous instrument")
            self._metrics[name] = instrument

    def get(self, name: str) -> Optional[Any]:
        """Return the instrument registered under name, or None."""
        with self._lock:
            return self._metrics.get(name)

    def get_or_register(self, name: str, factory: Callable[[], Any]) -> Any:
        """Return the instrument registered under name, creating it with factory if absent."""
        with self._lock:
            existing = self._metrics.get(name)
            if existing is not None:
                return existing

            instrument = factory()
            if not isinstance(instrument, INSTRUMENT_TYPES):
                raise TypeError(f"Unsupported instrument type: {type(instrument).__name__}")
            self._metrics[name] = instrument
            return instrument

    def unregister(self, name: str) -> None:
        """Remove name from the registry; unknown names are ignored."""
        with self._lock:
            self._metrics.pop(name, None)

    def names(self) -> List[str]:
        """Registered names in registration order."""
        with self._lock:
            return list(self._metrics)

    def each(self) -> Iterator[Tuple[str, Any]]:
        """Iterate (name, instrument) pairs over a copy of the registry."""
        with self._lock:
            items = list(self._metrics.items())
        return iter(items)

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, name: object) -> bool:
        return name in self._metrics

    def snapshot(self) -> MetricsSnapshotModel:
        """Serialize current state into a MetricsSnapshotModel."""
        return MetricsSnapshotModel({
            name: instrument.snapshot().model_dump(by_alias=True)
            for name, instrument in self.each()
        })

    def to_json(self) -> bytes:
        """Current snapshot as UTF-8 encoded JSON."""
        return self.snapshot().model_dump_json().encode("utf-8")

    def reset(self) -> None:
        """Unregister every instrument. Used for testing."""
        with self._lock:
            self._metrics.clear()

"""Name-path binder - populates a metrics schema with registered instruments.

The schema is a dataclass or pydantic model instance. Every field typed as
an instrument gets a fresh instrument, registered under a name derived from
its position in the schema. The 'metric' annotation of a field sets its name
segment; without it the lower-cased field name is used. For example:

```python
@dataclass
class TransportMetrics:
    latency: Optional[Timer] = field(default=None, metadata={"metric": "latency"})

@dataclass
class Messages:
    smtp: TransportMetrics = field(default_factory=TransportMetrics)
    http: TransportMetrics = field(default_factory=TransportMetrics, metadata={"metric": "web"})
```

yields timers named "smtp.latency" and "web.latency". Entries of a
string-keyed dict of records add their key as a segment of their own.

Binding is a one-time traversal: dict entries added afterwards are not bound.
Fields of any other kind are skipped so schemas can carry configuration too.

A field must not share its name with the instrument class it is typed as.
In ``Gauge: Optional[Gauge] = None`` the default is bound to ``Gauge`` before
the annotation is evaluated, so the field resolves to ``NoneType`` and is
skipped. Qualify the type instead: ``Gauge: Optional[instruments.Gauge] = None``.

Instruments are assigned with ``setattr``, so the schema must be mutable.
Fields of frozen dataclasses or frozen pydantic models are skipped with a
warning and nothing is registered for them.
"""

import dataclasses
import types
import typing
from typing import Any, List, Mapping, Optional, Set, Tuple

from pydantic import BaseModel, ValidationError

from metrictags.core.logging_config import get_logger
from metrictags.services.metrics.instance import get_default_registry
from metrictags.services.metrics.instruments import INSTRUMENT_TYPES
from metrictags.services.metrics.registry import IMetricsRegistry

logger = get_logger(__name__)

# Field annotation key holding an explicit name segment
METRIC_TAG = "metric"


def is_record(value: Any) -> bool:
    """True for dataclass and pydantic model instances (not classes)."""
    if isinstance(value, BaseModel):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def join_path(prefix: str, segment: str, separator: str) -> str:
    """Append segment to prefix, or return segment alone for an empty prefix."""
    if prefix:
        return prefix + separator + segment
    return segment


def field_segment(field_name: str, tag: Optional[str]) -> str:
    """Name segment of a field: its tag verbatim, else the lower-cased field name."""
    if tag:
        return tag
    return field_name.lower()


def instrument_kind(annotation: Any) -> Optional[type]:
    """Instrument class named by a field annotation, unwrapping Optional[...].

    Returns None for anything that is not an instrument type.
    """
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return instrument_kind(args[0])
        return None

    # Parameterized generics such as Dict[str, X] are never instruments
    if origin is None and isinstance(annotation, type) and issubclass(annotation, INSTRUMENT_TYPES):
        return annotation
    return None


def record_fields(record: Any) -> List[Tuple[str, Any, Optional[str]]]:
    """List (field name, annotation, metric tag) of a record in declaration order."""
    cls = type(record)

    if isinstance(record, BaseModel):
        fields = []
        for name, info in cls.model_fields.items():
            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            fields.append((name, info.annotation, extra.get(METRIC_TAG)))
        return fields

    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError) as e:
        # Unresolvable forward references; fall back to the raw annotations
        logger.debug(f"Could not resolve annotations of {cls.__name__}: {e}")
        hints = {}

    return [
        (f.name, hints.get(f.name, f.type), f.metadata.get(METRIC_TAG))
        for f in dataclasses.fields(record)
    ]


def _bind_record(
    record: Any,
    prefix: str,
    separator: str,
    registry: IMetricsRegistry,
    bound: List[str],
    active: Set[int],
) -> None:
    # Records on the current path; a record reachable from itself is bound once
    if id(record) in active:
        logger.debug(f"Skipping cyclic reference at '{prefix}'")
        return
    active.add(id(record))

    for field_name, annotation, tag in record_fields(record):
        name = join_path(prefix, field_segment(field_name, tag), separator)

        if annotation is type(None):
            logger.debug(f"Field '{field_name}' at '{name}' is annotated as None, "
                         f"check that it does not shadow its instrument type")
            continue

        kind = instrument_kind(annotation)
        if kind is not None:
            instrument = kind()
            try:
                setattr(record, field_name, instrument)
            except (AttributeError, TypeError, ValidationError) as e:
                logger.warning(f"Cannot assign metric '{name}' on {type(record).__name__}: {e}")
                continue
            registry.register(name, instrument)
            bound.append(name)
            continue

        value = getattr(record, field_name, None)
        if is_record(value):
            _bind_record(value, name, separator, registry, bound, active)
        elif isinstance(value, Mapping):
            for key, entry in value.items():
                if not isinstance(key, str):
                    logger.debug(f"Skipping non-string key {key!r} in '{name}'")
                    continue
                if not is_record(entry):
                    logger.debug(f"Skipping non-record entry '{key}' in '{name}'")
                    continue
                _bind_record(entry, name + separator + key, separator, registry, bound, active)

    active.discard(id(record))


def bind_metrics(
    metrics_data: Any,
    prefix: str = "",
    separator: str = ".",
    registry: Optional[IMetricsRegistry] = None,
) -> List[str]:
    """Populate every instrument field of metrics_data and register it.

    Args:
        metrics_data: Dataclass or pydantic model instance, mutated in place
        prefix: Name prefix for every metric (normally empty)
        separator: String placed between name segments
        registry: Target registry (default: the process-wide default registry)

    Returns:
        Registered names in registration order

    Raises:
        TypeError: if metrics_data is not a dataclass or pydantic model instance
        DuplicateMetricError: if the registry rejects a duplicate name
    """
    if not is_record(metrics_data):
        raise TypeError(
            f"metrics_data must be a dataclass or pydantic model instance, got {type(metrics_data).__name__}"
        )
    if registry is None:
        registry = get_default_registry()

    bound: List[str] = []
    _bind_record(metrics_data, prefix, separator, registry, bound, set())
    logger.debug(f"Bound {len(bound)} metrics from {type(metrics_data).__name__}")
    return bound

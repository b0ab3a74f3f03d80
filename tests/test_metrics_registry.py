"""
Unit tests for MetricsRegistry and the default registry accessor.

Tests registration, duplicate policies and snapshot serialization without
any background tasks.
"""

import json

import pytest

from metrictags.services.metrics import (
    Counter, Gauge, Meter, Histogram, Timer,
    MetricsRegistry, DuplicateMetricError, MetricsSnapshotModel,
    get_default_registry, set_default_registry,
)


def test_register_and_get(registry):
    """Test that a registered instrument can be fetched back by name."""
    counter = Counter()
    registry.register("requests", counter)

    assert registry.get("requests") is counter
    assert "requests" in registry
    assert len(registry) == 1
    assert registry.get("missing") is None


def test_register_rejects_non_instruments(registry):
    """Test that only supported instrument types can be registered."""
    with pytest.raises(TypeError):
        registry.register("bogus", object())


def test_duplicate_replace_policy_last_write_wins():
    """Test that the 'replace' policy keeps the most recent registration."""
    registry = MetricsRegistry(on_duplicate="replace")
    first, second = Counter(), Counter()

    registry.register("requests", first)
    registry.register("requests", second)

    assert registry.get("requests") is second
    assert registry.names() == ["requests"]


def test_duplicate_reject_policy_raises():
    """Test that the 'reject' policy raises and keeps the original instrument."""
    registry = MetricsRegistry(on_duplicate="reject")
    first = Counter()
    registry.register("requests", first)

    with pytest.raises(DuplicateMetricError):
        registry.register("requests", Counter())

    assert registry.get("requests") is first


def test_duplicate_error_is_value_error():
    assert issubclass(DuplicateMetricError, ValueError)


def test_unknown_duplicate_policy():
    with pytest.raises(ValueError, match="Unknown duplicate policy"):
        MetricsRegistry(on_duplicate="ignore")


def test_get_or_register_returns_existing(registry):
    """Test that get_or_register only calls the factory for new names."""
    gauge = registry.get_or_register("temperature", Gauge)
    again = registry.get_or_register("temperature", Gauge)

    assert isinstance(gauge, Gauge)
    assert again is gauge


def test_get_or_register_validates_factory_result(registry):
    with pytest.raises(TypeError):
        registry.get_or_register("bogus", dict)
    assert "bogus" not in registry


def test_unregister_and_reset(registry):
    """Test that unregister drops a single name and reset drops all."""
    registry.register("a", Counter())
    registry.register("b", Counter())

    registry.unregister("a")
    registry.unregister("never-registered")
    assert registry.names() == ["b"]

    registry.reset()
    assert len(registry) == 0


def test_names_keep_registration_order(registry):
    for name in ("zeta", "alpha", "mid"):
        registry.register(name, Counter())

    assert registry.names() == ["zeta", "alpha", "mid"]
    assert [name for name, _ in registry.each()] == ["zeta", "alpha", "mid"]


def test_snapshot_keys_per_instrument_kind(registry):
    """Test that every kind serializes under its documented statistic keys."""
    registry.register("counter", Counter())
    registry.register("gauge", Gauge())
    registry.register("meter", Meter())
    registry.register("histogram", Histogram())
    registry.register("timer", Timer())

    data = registry.snapshot().model_dump()

    histogram_keys = {"count", "min", "max", "mean", "stddev", "median", "75%", "95%", "99%", "99.9%"}
    meter_keys = {"count", "1m.rate", "5m.rate", "15m.rate", "mean.rate"}

    assert set(data["counter"]) == {"count"}
    assert set(data["gauge"]) == {"value"}
    assert set(data["meter"]) == meter_keys
    assert set(data["histogram"]) == histogram_keys
    assert set(data["timer"]) == histogram_keys | meter_keys


def test_to_json_reflects_updates(registry):
    """Test that the serialized snapshot reflects instrument updates."""
    counter = Counter()
    gauge = Gauge()
    registry.register("jobs.done", counter)
    registry.register("jobs.queue", gauge)

    counter.inc(1)
    counter.inc(2)
    gauge.update(7)

    payload = registry.to_json()
    assert isinstance(payload, bytes)

    data = json.loads(payload)
    assert data["jobs.done"]["count"] == 3
    assert data["jobs.queue"]["value"] == 7

    # Payload validates back into the snapshot model
    reconstructed = MetricsSnapshotModel.model_validate_json(payload)
    assert reconstructed.root["jobs.done"]["count"] == 3


def test_empty_registry_snapshot(registry):
    assert registry.snapshot().root == {}
    assert json.loads(registry.to_json()) == {}


def test_default_registry_accessor(default_registry):
    """Test that the default registry is shared and replaceable."""
    assert get_default_registry() is default_registry
    assert get_default_registry() is get_default_registry()

    replacement = MetricsRegistry()
    set_default_registry(replacement)
    assert get_default_registry() is replacement

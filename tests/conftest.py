import pytest

from metrictags.services.metrics import MetricsRegistry
from metrictags.services.metrics import instance


@pytest.fixture
def registry():
    return MetricsRegistry(on_duplicate="replace")


@pytest.fixture
def default_registry(monkeypatch):
    """Fresh process-wide default registry, restored after the test."""
    fresh = MetricsRegistry(on_duplicate="replace")
    monkeypatch.setattr(instance, "_registry", fresh)
    yield fresh

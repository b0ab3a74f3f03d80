"""Module-level default registry accessor.

Callers that do not pass a registry explicitly share this process-wide
instance. It is created lazily on first use and can be replaced at startup.
"""

from typing import Optional

from .registry import MetricsRegistry

# Module-level default instance - created on first access
_registry: Optional[MetricsRegistry] = None


def get_default_registry() -> MetricsRegistry:
    """Get the process-wide default registry.

    Returns:
        The default MetricsRegistry, created on first call
    """
    global _registry
    if _registry is None:
        _registry = MetricsRegistry()
    return _registry


def set_default_registry(registry: MetricsRegistry) -> None:
    """Replace the process-wide default registry.

    Args:
        registry: The registry instance to use as default
    """
    global _registry
    _registry = registry

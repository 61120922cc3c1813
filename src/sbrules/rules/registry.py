"""Filter type registration and lookup."""

from typing import Any, Callable

from sbrules.rules.base import Filter

FilterFactory = Callable[..., Filter]

_filters: dict[str, FilterFactory] = {}


class FilterNotFoundError(Exception):
  """Requested filter kind is not registered."""


def register_filter(kind: str, factory: FilterFactory) -> None:
  """Register a filter factory.

  Args:
    kind: Name used in configuration (e.g., 'correlation').
    factory: Callable taking the filter's fields as keyword arguments.
  """
  _filters[kind] = factory


def create_filter(kind: str, **fields: Any) -> Filter:
  """Build a filter of the given kind.

  Raises:
    FilterNotFoundError: If no factory is registered for `kind`.
  """
  FilterRegistry.load_all()
  if kind not in _filters:
    available = ", ".join(sorted(_filters)) or "none"
    raise FilterNotFoundError(
      f"Filter kind '{kind}' not found. Available: {available}"
    )
  return _filters[kind](**fields)


def list_filters() -> list[str]:
  """List all registered filter kinds."""
  return list(_filters.keys())


class FilterRegistry:
  """Registry for lazy filter loading."""

  @staticmethod
  def load_all() -> None:
    """Load all filter modules to trigger registration."""
    # Each module registers its filters at import time
    from sbrules.rules import boolean, correlation  # noqa: F401

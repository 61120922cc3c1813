"""Constant filters that accept or reject every message."""

from dataclasses import dataclass

from sbrules.models import Message
from sbrules.rules.registry import register_filter


@dataclass(frozen=True)
class TrueFilter:
  """Matches every message. Used by the default rule."""

  @property
  def kind(self) -> str:
    return "true"

  def matches(self, message: Message) -> bool:
    return True


@dataclass(frozen=True)
class FalseFilter:
  """Matches no message, silencing a subscription without removing it."""

  @property
  def kind(self) -> str:
    return "false"

  def matches(self, message: Message) -> bool:
    return False


def _create_true_filter() -> TrueFilter:
  return TrueFilter()


def _create_false_filter() -> FalseFilter:
  return FalseFilter()


register_filter("true", _create_true_filter)
register_filter("false", _create_false_filter)

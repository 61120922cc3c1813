"""Rule abstractions for subscription routing."""

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Protocol

from sbrules.models import Message

DEFAULT_RULE_NAME = "$Default"


class Filter(Protocol):
  """Protocol for subscription filters.

  A filter decides whether a message belongs to a subscription. Filters
  are immutable and evaluation never raises: a message missing a field
  simply fails to satisfy any constraint on that field.

  Example:
    class SubjectFilter:
      @property
      def kind(self) -> str:
        return "subject"

      def matches(self, message: Message) -> bool:
        return message.subject == "orders"
  """

  @property
  def kind(self) -> str:
    """Registry name of the filter type (e.g., 'correlation')."""
    ...

  def matches(self, message: Message) -> bool:
    """Check whether the message satisfies this filter."""
    ...


@dataclass(frozen=True)
class RuleAction:
  """Application properties stamped onto messages accepted by a rule."""

  properties: Mapping[str, Any] = field(default_factory=dict, hash=False)

  def apply(self, message: Message) -> Message:
    if not self.properties:
      return message
    merged = {**message.application_properties, **self.properties}
    return replace(message, application_properties=merged)


@dataclass(frozen=True)
class Rule:
  """A named filter with an optional action.

  Rules are never mutated once attached to a table; reconfiguration
  removes or replaces them wholesale.
  """

  name: str
  filter: Filter
  action: RuleAction | None = None

  def matches(self, message: Message) -> bool:
    return self.filter.matches(message)

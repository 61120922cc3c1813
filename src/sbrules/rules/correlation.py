"""Correlation filter: exact-match routing on message properties."""

from dataclasses import dataclass, field
from typing import Any, Mapping

from sbrules.models import Message
from sbrules.rules.registry import register_filter


@dataclass(frozen=True)
class CorrelationFilter:
  """A set of optional equality constraints on message properties.

  Each system field left as None or "" is a wildcard. `properties` holds
  constraints on application properties, keyed by property name.
  """

  content_type: str | None = None
  correlation_id: str | None = None
  subject: str | None = None
  message_id: str | None = None
  reply_to: str | None = None
  reply_to_session_id: str | None = None
  session_id: str | None = None
  send_to: str | None = None
  properties: Mapping[str, Any] = field(default_factory=dict, hash=False)

  @property
  def kind(self) -> str:
    return "correlation"

  @property
  def is_catch_all(self) -> bool:
    """True when no field is constrained, so every message matches."""
    return not self.properties and not self.constrained_fields()

  def constrained_fields(self) -> dict[str, str]:
    """System fields that carry a constraint, keyed by field name."""
    fields = {
      "content_type": self.content_type,
      "correlation_id": self.correlation_id,
      "subject": self.subject,
      "message_id": self.message_id,
      "reply_to": self.reply_to,
      "reply_to_session_id": self.reply_to_session_id,
      "session_id": self.session_id,
      "send_to": self.send_to,
    }
    return {name: value for name, value in fields.items() if _is_constrained(value)}

  def matches(self, message: Message) -> bool:
    return matches(self, message)


def _is_constrained(value: str | None) -> bool:
  return value is not None and value != ""


def _system_pairs(
  correlation: CorrelationFilter,
  message: Message,
) -> tuple[tuple[str | None, str | None], ...]:
  """Pair each filter system field with the message field it constrains."""
  return (
    (correlation.content_type, message.content_type),
    (correlation.correlation_id, message.correlation_id),
    (correlation.subject, message.subject),
    (correlation.message_id, message.message_id),
    (correlation.reply_to, message.reply_to),
    (correlation.reply_to_session_id, message.reply_to_session_id),
    (correlation.session_id, message.session_id),
    (correlation.send_to, message.send_to),
  )


_MISSING = object()


def matches(correlation: CorrelationFilter, message: Message) -> bool:
  """Evaluate a correlation filter against a message.

  Comparison is exact and case-sensitive. Wildcard fields impose no
  constraint; a constrained field the message lacks never matches.

  Args:
    correlation: Filter to evaluate.
    message: Message to test.

  Returns:
    True iff every constrained field equals the message's value.
  """
  for expected, actual in _system_pairs(correlation, message):
    if _is_constrained(expected) and expected != actual:
      return False

  for key, expected in correlation.properties.items():
    if message.application_properties.get(key, _MISSING) != expected:
      return False

  return True


def _create_correlation_filter(**fields: Any) -> CorrelationFilter:
  return CorrelationFilter(**fields)


register_filter("correlation", _create_correlation_filter)

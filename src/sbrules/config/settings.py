"""Topology settings."""

from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sbrules.models import DEFAULT_MAX_DELIVERY_COUNT, Message
from sbrules.rules import DEFAULT_RULE_NAME, FilterRegistry, list_filters

_CORRELATION_FIELDS = (
  "content_type",
  "correlation_id",
  "subject",
  "message_id",
  "reply_to",
  "reply_to_session_id",
  "session_id",
  "send_to",
)


def _check_unique_names(items: list, label: str) -> list:
  seen: set[str] = set()
  for item in items:
    if item.name in seen:
      raise ValueError(f"duplicate {label} name '{item.name}'")
    seen.add(item.name)
  return items


class FilterSettings(BaseModel):
  """A rule filter. Correlation fields are only valid for kind 'correlation'."""

  model_config = ConfigDict(extra="forbid")

  kind: str = "correlation"
  content_type: str | None = None
  correlation_id: str | None = None
  subject: str | None = None
  message_id: str | None = None
  reply_to: str | None = None
  reply_to_session_id: str | None = None
  session_id: str | None = None
  send_to: str | None = None
  properties: dict[str, Any] = Field(default_factory=dict)

  @field_validator("kind")
  @classmethod
  def _known_kind(cls, value: str) -> str:
    FilterRegistry.load_all()
    if value not in list_filters():
      available = ", ".join(sorted(list_filters()))
      raise ValueError(f"unknown filter kind '{value}' (available: {available})")
    return value

  @model_validator(mode="after")
  def _fields_match_kind(self) -> "FilterSettings":
    if self.kind != "correlation" and (self.properties or any(
      getattr(self, name) is not None for name in _CORRELATION_FIELDS
    )):
      raise ValueError(f"'{self.kind}' filters take no correlation fields")
    return self

  def filter_fields(self) -> dict[str, Any]:
    """Keyword arguments for the registered filter factory."""
    if self.kind != "correlation":
      return {}
    return self.model_dump(exclude={"kind"}, exclude_none=True)


class RuleSettings(BaseModel):
  """A named subscription rule."""

  model_config = ConfigDict(extra="forbid")

  name: str = DEFAULT_RULE_NAME
  filter: FilterSettings = Field(default_factory=FilterSettings)
  action: dict[str, Any] | None = None


class _EntitySettings(BaseModel):
  model_config = ConfigDict(extra="forbid")

  max_delivery_count: int = Field(default=DEFAULT_MAX_DELIVERY_COUNT, gt=0)
  dead_lettering_on_message_expiration: bool = False
  default_message_time_to_live: timedelta | None = None


class SubscriptionSettings(_EntitySettings):
  """A topic subscription and its rules."""

  name: str
  rules: list[RuleSettings] = Field(default_factory=list)

  @field_validator("rules")
  @classmethod
  def _unique_rules(cls, value: list[RuleSettings]) -> list[RuleSettings]:
    return _check_unique_names(value, "rule")


class QueueSettings(_EntitySettings):
  """A queue."""

  name: str
  display_name: str | None = None


class TopicSettings(BaseModel):
  """A topic and its subscriptions."""

  model_config = ConfigDict(extra="forbid")

  name: str
  display_name: str | None = None
  subscriptions: list[SubscriptionSettings] = Field(default_factory=list)

  @field_validator("subscriptions")
  @classmethod
  def _unique_subscriptions(
    cls, value: list[SubscriptionSettings]
  ) -> list[SubscriptionSettings]:
    return _check_unique_names(value, "subscription")


class Settings(BaseModel):
  """Namespace topology configuration."""

  model_config = ConfigDict(extra="forbid")

  namespace: str = "servicebus"
  queues: list[QueueSettings] = Field(default_factory=list)
  topics: list[TopicSettings] = Field(default_factory=list)

  @field_validator("queues")
  @classmethod
  def _unique_queues(cls, value: list[QueueSettings]) -> list[QueueSettings]:
    return _check_unique_names(value, "queue")

  @field_validator("topics")
  @classmethod
  def _unique_topics(cls, value: list[TopicSettings]) -> list[TopicSettings]:
    return _check_unique_names(value, "topic")


class MessageSettings(BaseModel):
  """A message described in a file, for routing from the command line."""

  model_config = ConfigDict(extra="forbid")

  message_id: str | None = None
  content_type: str | None = None
  correlation_id: str | None = None
  subject: str | None = None
  reply_to: str | None = None
  reply_to_session_id: str | None = None
  session_id: str | None = None
  send_to: str | None = None
  application_properties: dict[str, Any] = Field(default_factory=dict)
  body: Any = None
  delivery_count: int = Field(default=0, ge=0)
  time_to_live: timedelta | None = None

  def to_message(self) -> Message:
    fields = self.model_dump(exclude_none=True)
    return Message(**fields)

"""Core domain models for message routing."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping

# Reason strings the platform stamps on dead-lettered messages.
MAX_DELIVERY_COUNT_EXCEEDED = "MaxDeliveryCountExceeded"
TTL_EXPIRED = "TTLExpiredException"

DEFAULT_MAX_DELIVERY_COUNT = 10


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def _new_message_id() -> str:
  return uuid.uuid4().hex


class DeliveryOutcome(Enum):
  """Result of recording a delivery attempt."""

  FIRST_DELIVERY = "first_delivery"
  REDELIVER = "redeliver"
  DEAD_LETTER = "dead_letter"


class Disposition(Enum):
  """Terminal state of a single dispatch."""

  ACCEPTED = "accepted"
  DEAD_LETTERED = "dead_lettered"
  SKIPPED = "skipped"
  EXPIRED = "expired"


class DispatchState(Enum):
  """States a message passes through inside the dispatcher."""

  RECEIVED = "received"
  EVALUATING = "evaluating"
  ACCEPTED = "accepted"
  DEAD_LETTERED = "dead_lettered"
  SKIPPED = "skipped"
  EXPIRED = "expired"


@dataclass(frozen=True)
class Message:
  """A brokered message and its system properties."""

  message_id: str = field(default_factory=_new_message_id)
  content_type: str | None = None
  correlation_id: str | None = None
  subject: str | None = None
  reply_to: str | None = None
  reply_to_session_id: str | None = None
  session_id: str | None = None
  send_to: str | None = None
  application_properties: Mapping[str, Any] = field(default_factory=dict, hash=False)
  body: Any = field(default=None, hash=False)
  delivery_count: int = 0
  enqueued_at: datetime = field(default_factory=utcnow)
  time_to_live: timedelta | None = None

  @property
  def expires_at(self) -> datetime | None:
    if self.time_to_live is None:
      return None
    return self.enqueued_at + self.time_to_live

  def is_expired(self, now: datetime, default_ttl: timedelta | None = None) -> bool:
    """Check whether the message's time-to-live has elapsed at `now`.

    Args:
      now: Reference time, timezone-aware.
      default_ttl: Entity default used when the message carries no TTL.
    """
    ttl = self.time_to_live if self.time_to_live is not None else default_ttl
    if ttl is None:
      return False
    return now >= self.enqueued_at + ttl


@dataclass(frozen=True)
class DeliveryPolicy:
  """Delivery settings shared by queues and subscriptions.

  The delivery-count limit and the expiry policy are independent: either
  can dead-letter a message without reference to the other.
  """

  max_delivery_count: int = DEFAULT_MAX_DELIVERY_COUNT
  dead_lettering_on_expiration: bool = False
  default_time_to_live: timedelta | None = None

  def __post_init__(self) -> None:
    if self.max_delivery_count <= 0:
      raise ValueError(
        f"max_delivery_count must be positive, got {self.max_delivery_count}"
      )

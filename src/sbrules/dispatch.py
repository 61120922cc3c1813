"""Subscription dispatch: filtering, delivery counting and dead-lettering."""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable

from sbrules.delivery import DeliveryTracker
from sbrules.models import (
  MAX_DELIVERY_COUNT_EXCEEDED,
  TTL_EXPIRED,
  DeliveryOutcome,
  DeliveryPolicy,
  DispatchState,
  Disposition,
  Message,
  utcnow,
)
from sbrules.rules import Rule, RuleTable

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class MessageNotInFlightError(Exception):
  """Settlement requested for a message that is not awaiting one."""


@dataclass(frozen=True)
class DispatchResult:
  """Outcome of dispatching a single message."""

  message: Message
  disposition: Disposition
  outcome: DeliveryOutcome | None = None
  rule: Rule | None = None
  reason: str | None = None

  @property
  def accepted(self) -> bool:
    return self.disposition == Disposition.ACCEPTED


@dataclass(frozen=True)
class DeadLetteredMessage:
  """A message moved to the dead-letter sub-queue."""

  message: Message
  reason: str
  description: str | None
  dead_lettered_at: datetime


class Dispatcher:
  """Routes inbound messages for one queue or subscription.

  Each message moves RECEIVED -> EVALUATING -> one of ACCEPTED,
  DEAD_LETTERED, SKIPPED or EXPIRED. Accepted messages stay in flight
  until the worker acks, abandons or dead-letters them.

  An empty rule table passes every message through. A non-empty table
  skips messages no rule matches; those are left for the transport to
  route elsewhere and do not count as delivery attempts.

  Example:
    dispatcher = Dispatcher(DeliveryPolicy(max_delivery_count=10), table)
    result = dispatcher.dispatch(message)
    if result.accepted:
      dispatcher.ack(result.message.message_id)
  """

  def __init__(
    self,
    policy: DeliveryPolicy,
    rules: RuleTable | None = None,
    *,
    name: str = "",
    clock: Clock | None = None,
  ):
    self.policy = policy
    self.rules = rules if rules is not None else RuleTable()
    self.name = name
    self._clock = clock or utcnow
    self._tracker = DeliveryTracker(policy.max_delivery_count)
    self._in_flight: dict[str, Message] = {}
    self._dead_letters: list[DeadLetteredMessage] = []
    self._lock = threading.Lock()

  @property
  def tracker(self) -> DeliveryTracker:
    return self._tracker

  @property
  def in_flight(self) -> list[str]:
    with self._lock:
      return list(self._in_flight)

  @property
  def dead_letter_queue(self) -> tuple[DeadLetteredMessage, ...]:
    with self._lock:
      return tuple(self._dead_letters)

  def dispatch(self, message: Message) -> DispatchResult:
    """Decide what happens to an inbound message.

    Args:
      message: Message received from the transport.

    Returns:
      DispatchResult; for accepted messages, `message` carries the
      updated delivery count and any properties set by the rule action.
    """
    message_id = message.message_id
    self._transition(message_id, DispatchState.RECEIVED)

    self._transition(message_id, DispatchState.EVALUATING)
    rule = self.rules.evaluate(message)
    if rule is None and len(self.rules) > 0:
      self._transition(message_id, DispatchState.SKIPPED)
      return DispatchResult(message=message, disposition=Disposition.SKIPPED)

    # Only messages that belong to this entity can expire into its DLQ
    if message.is_expired(self._clock(), self.policy.default_time_to_live):
      return self._expire(message)

    count, outcome = self._tracker.record(message_id, message.delivery_count)
    delivered = replace(message, delivery_count=count)

    if outcome == DeliveryOutcome.DEAD_LETTER:
      self._tracker.forget(message_id)
      self._move_to_dead_letter(delivered, MAX_DELIVERY_COUNT_EXCEEDED, None)
      self._transition(message_id, DispatchState.DEAD_LETTERED)
      return DispatchResult(
        message=delivered,
        disposition=Disposition.DEAD_LETTERED,
        outcome=outcome,
        rule=rule,
        reason=MAX_DELIVERY_COUNT_EXCEEDED,
      )

    if rule is not None and rule.action is not None:
      delivered = rule.action.apply(delivered)

    with self._lock:
      self._in_flight[message_id] = delivered
    self._transition(message_id, DispatchState.ACCEPTED)
    return DispatchResult(
      message=delivered,
      disposition=Disposition.ACCEPTED,
      outcome=outcome,
      rule=rule,
    )

  def receive(self, message: Message) -> tuple[Message, Disposition] | None:
    """Dispatch and hand the result to a worker.

    Returns:
      (message, ACCEPTED | DEAD_LETTERED), or None when the message was
      skipped or dropped on expiry.
    """
    result = self.dispatch(message)
    if result.disposition in (Disposition.ACCEPTED, Disposition.DEAD_LETTERED):
      return result.message, result.disposition
    return None

  def ack(self, message_id: str) -> Message:
    """Complete an accepted message, ending its tracking."""
    message = self._settle(message_id)
    self._tracker.forget(message_id)
    logger.debug("[%s] Message %s completed", self.name, message_id)
    return message

  def abandon(self, message_id: str) -> Message:
    """Release an accepted message for redelivery.

    The delivery count is kept, so dispatching the returned message again
    counts as a redelivery.
    """
    message = self._settle(message_id)
    logger.debug(
      "[%s] Message %s abandoned after %d attempt(s)",
      self.name, message_id, message.delivery_count,
    )
    return message

  def dead_letter(
    self,
    message_id: str,
    reason: str,
    description: str | None = None,
  ) -> DeadLetteredMessage:
    """Dead-letter an accepted message on the worker's request."""
    message = self._settle(message_id)
    self._tracker.forget(message_id)
    return self._move_to_dead_letter(message, reason, description)

  def _settle(self, message_id: str) -> Message:
    with self._lock:
      message = self._in_flight.pop(message_id, None)
    if message is None:
      raise MessageNotInFlightError(
        f"Message '{message_id}' is not in flight on '{self.name}'"
      )
    return message

  def _expire(self, message: Message) -> DispatchResult:
    self._tracker.forget(message.message_id)
    with self._lock:
      self._in_flight.pop(message.message_id, None)

    if not self.policy.dead_lettering_on_expiration:
      logger.info("[%s] Message %s expired, dropped", self.name, message.message_id)
      self._transition(message.message_id, DispatchState.EXPIRED)
      return DispatchResult(message=message, disposition=Disposition.EXPIRED)

    self._move_to_dead_letter(message, TTL_EXPIRED, None)
    self._transition(message.message_id, DispatchState.DEAD_LETTERED)
    return DispatchResult(
      message=message,
      disposition=Disposition.DEAD_LETTERED,
      reason=TTL_EXPIRED,
    )

  def _move_to_dead_letter(
    self,
    message: Message,
    reason: str,
    description: str | None,
  ) -> DeadLetteredMessage:
    entry = DeadLetteredMessage(
      message=message,
      reason=reason,
      description=description,
      dead_lettered_at=self._clock(),
    )
    with self._lock:
      self._dead_letters.append(entry)
    logger.warning(
      "[%s] Message %s dead-lettered: %s", self.name, message.message_id, reason
    )
    return entry

  def _transition(self, message_id: str, state: DispatchState) -> None:
    logger.debug("[%s] Message %s -> %s", self.name, message_id, state.value)

"""Per-message delivery attempt tracking."""

import logging
import threading
from dataclasses import dataclass, field

from sbrules.models import DEFAULT_MAX_DELIVERY_COUNT, DeliveryOutcome

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
  count: int = 0
  removed: bool = False
  lock: threading.Lock = field(default_factory=threading.Lock)


class DeliveryTracker:
  """Counts delivery attempts per message id.

  Each message id owns its own lock, so increments on different ids
  never contend. The table lock is held only while an entry is created
  or dropped.

  Unknown ids are treated as never delivered: the first attempt starts
  the count at 1 and `forget` of an unknown id is a no-op.
  """

  def __init__(self, max_delivery_count: int = DEFAULT_MAX_DELIVERY_COUNT):
    if max_delivery_count <= 0:
      raise ValueError(
        f"max_delivery_count must be positive, got {max_delivery_count}"
      )
    self.max_delivery_count = max_delivery_count
    self._entries: dict[str, _Entry] = {}
    self._table_lock = threading.Lock()

  def _entry(self, message_id: str) -> _Entry:
    entry = self._entries.get(message_id)
    if entry is None:
      with self._table_lock:
        entry = self._entries.setdefault(message_id, _Entry())
    return entry

  def record_attempt(self, message_id: str) -> DeliveryOutcome:
    """Count one delivery attempt and classify it.

    Args:
      message_id: Id of the message being delivered.

    Returns:
      DEAD_LETTER once the count exceeds the maximum, REDELIVER for any
      later attempt below that, FIRST_DELIVERY for the first attempt.
    """
    return self.record(message_id)[1]

  def record(
    self,
    message_id: str,
    previous_count: int = 0,
  ) -> tuple[int, DeliveryOutcome]:
    """Count one delivery attempt, returning the new count and its outcome.

    Args:
      message_id: Id of the message being delivered.
      previous_count: Attempts already made elsewhere, e.g. the count a
        message carries from the transport. The new count is at least
        one more than this.
    """
    while True:
      entry = self._entry(message_id)
      with entry.lock:
        # Dropped by a concurrent forget; retry on a fresh entry
        if entry.removed:
          continue
        entry.count = max(entry.count, previous_count) + 1
        count = entry.count
      return count, self._classify(message_id, count)

  def _classify(self, message_id: str, count: int) -> DeliveryOutcome:
    if count > self.max_delivery_count:
      logger.debug(
        "Message %s exceeded max delivery count (%d > %d)",
        message_id, count, self.max_delivery_count,
      )
      return DeliveryOutcome.DEAD_LETTER
    if count > 1:
      return DeliveryOutcome.REDELIVER
    return DeliveryOutcome.FIRST_DELIVERY

  def delivery_count(self, message_id: str) -> int:
    entry = self._entries.get(message_id)
    if entry is None:
      return 0
    with entry.lock:
      return entry.count

  def forget(self, message_id: str) -> None:
    """Drop tracking state after a terminal disposition."""
    with self._table_lock:
      entry = self._entries.pop(message_id, None)
    if entry is not None:
      with entry.lock:
        entry.removed = True

  def __len__(self) -> int:
    return len(self._entries)

"""Routing orchestration: load a topology and show where a message lands."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from sbrules.config import load_config, load_message
from sbrules.dispatch import DispatchResult
from sbrules.models import Disposition, Message
from sbrules.namespace import Namespace, build_namespace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteEntry:
  """Where a message went on one queue or subscription."""

  entity: str
  result: DispatchResult

  @property
  def rule_name(self) -> str | None:
    return self.result.rule.name if self.result.rule else None


@dataclass(frozen=True)
class RoutingReport:
  """Routing outcome of a single message across a namespace."""

  namespace: str
  message: Message
  entries: Sequence[RouteEntry]

  @property
  def accepted(self) -> list[RouteEntry]:
    return [e for e in self.entries if e.result.disposition == Disposition.ACCEPTED]

  @property
  def summary(self) -> str:
    if not self.entries:
      return "No queues or subscriptions to route to."

    counts: dict[str, int] = {}
    for entry in self.entries:
      key = entry.result.disposition.value
      counts[key] = counts.get(key, 0) + 1

    parts = [
      f"{counts[d.value]} {d.value}" for d in Disposition if d.value in counts
    ]
    total = len(self.entries)
    return (
      f"Routed to {total} destination{'s' if total != 1 else ''}: "
      f"{', '.join(parts)}."
    )


def route_message(
  namespace: Namespace,
  message: Message,
  topic: str | None = None,
  queue: str | None = None,
) -> RoutingReport:
  """Dispatch a message and collect per-entity results.

  With neither `topic` nor `queue`, the message is published to every
  topic in the namespace.
  """
  entries: list[RouteEntry] = []

  if queue:
    result = namespace.queue(queue).send(message)
    entries.append(RouteEntry(entity=queue, result=result))

  topics = [namespace.topic(topic)] if topic else ([] if queue else namespace.topics)
  for target in topics:
    for name, result in target.publish(message).items():
      entries.append(RouteEntry(entity=f"{target.display_name}/{name}", result=result))

  report = RoutingReport(namespace=namespace.name, message=message, entries=entries)
  logger.info("Message %s: %s", message.message_id, report.summary)
  return report


def run_route(
  message_path: Path,
  config_path: Path | None = None,
  topic: str | None = None,
  queue: str | None = None,
) -> RoutingReport:
  """Load config and message files, then route the message."""
  settings = load_config(config_path)
  namespace = build_namespace(settings)
  message = load_message(message_path)
  return route_message(namespace, message, topic=topic, queue=queue)

"""Output formatting for routing reports and topologies."""

import json
from abc import ABC, abstractmethod
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sbrules.models import Disposition
from sbrules.namespace import Namespace
from sbrules.routing import RoutingReport
from sbrules.rules import CorrelationFilter, Filter, Rule


def describe_filter(filter: Filter) -> str:
  """One-line description of a filter's constraints."""
  if isinstance(filter, CorrelationFilter):
    if filter.is_catch_all:
      return "correlation (catch-all)"
    parts = [f"{name}={value}" for name, value in filter.constrained_fields().items()]
    parts.extend(f"properties.{key}={value}" for key, value in filter.properties.items())
    return "correlation: " + ", ".join(parts)
  return filter.kind


def _topology_data(namespace: Namespace) -> dict[str, Any]:
  def rule_data(rule: Rule) -> dict[str, Any]:
    return {"name": rule.name, "filter": describe_filter(rule.filter)}

  return {
    "namespace": namespace.name,
    "queues": [
      {
        "name": q.name,
        "display_name": q.display_name,
        "max_delivery_count": q.policy.max_delivery_count,
        "dead_lettering_on_message_expiration": q.policy.dead_lettering_on_expiration,
      }
      for q in namespace.queues
    ],
    "topics": [
      {
        "name": t.name,
        "display_name": t.display_name,
        "subscriptions": [
          {
            "name": s.name,
            "max_delivery_count": s.policy.max_delivery_count,
            "dead_lettering_on_message_expiration": s.policy.dead_lettering_on_expiration,
            "rules": [rule_data(r) for r in s.rules],
          }
          for s in t.subscriptions
        ],
      }
      for t in namespace.topics
    ],
  }


class OutputFormatter(ABC):
  """Base output formatter."""

  @abstractmethod
  def format(self, report: RoutingReport) -> str:
    """Format a routing report for output."""
    ...

  @abstractmethod
  def format_topology(self, namespace: Namespace) -> str:
    """Format a namespace's entities for output."""
    ...


class TerminalFormatter(OutputFormatter):
  """Rich terminal output formatter."""

  DISPOSITION_STYLES = {
    Disposition.ACCEPTED: "green",
    Disposition.DEAD_LETTERED: "bold red",
    Disposition.SKIPPED: "dim",
    Disposition.EXPIRED: "yellow",
  }

  def __init__(self, console: Console | None = None):
    self.console = console or Console()

  def format(self, report: RoutingReport) -> str:
    self.console.print()
    self.console.print(Panel(
      report.summary,
      title=f"[bold]Message {report.message.message_id}[/bold] ({report.namespace})",
      border_style="blue",
    ))

    if not report.entries:
      return ""

    table = Table(show_header=True, header_style="bold")
    table.add_column("Destination", min_width=20)
    table.add_column("Disposition", width=14)
    table.add_column("Rule", width=20)
    table.add_column("Deliveries", width=10, justify="right")
    table.add_column("Reason")

    for entry in report.entries:
      result = entry.result
      style = self.DISPOSITION_STYLES.get(result.disposition, "")
      table.add_row(
        entry.entity,
        Text(result.disposition.value.upper(), style=style),
        entry.rule_name or "-",
        str(result.message.delivery_count),
        result.reason or "",
      )

    self.console.print()
    self.console.print(table)
    return ""

  def format_topology(self, namespace: Namespace) -> str:
    self.console.print()
    self.console.print(Panel(
      f"{len(namespace.queues)} queue(s), {len(namespace.topics)} topic(s)",
      title=f"[bold]Namespace[/bold] {namespace.name}",
      border_style="blue",
    ))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Entity", min_width=20)
    table.add_column("Max deliveries", width=14, justify="right")
    table.add_column("DLQ on expiry", width=13)
    table.add_column("Rules", min_width=30)

    for queue in namespace.queues:
      table.add_row(
        f"queue {queue.display_name}",
        str(queue.policy.max_delivery_count),
        "yes" if queue.policy.dead_lettering_on_expiration else "no",
        "-",
      )
    for topic in namespace.topics:
      for sub in topic.subscriptions:
        rules = "\n".join(
          f"{rule.name}: {describe_filter(rule.filter)}" for rule in sub.rules
        )
        table.add_row(
          f"subscription {topic.display_name}/{sub.name}",
          str(sub.policy.max_delivery_count),
          "yes" if sub.policy.dead_lettering_on_expiration else "no",
          rules or "[dim]pass-through[/dim]",
        )

    self.console.print()
    self.console.print(table)
    return ""


class JsonFormatter(OutputFormatter):
  """JSON output formatter."""

  def format(self, report: RoutingReport) -> str:
    data = {
      "namespace": report.namespace,
      "message_id": report.message.message_id,
      "summary": report.summary,
      "entries": [
        {
          "entity": e.entity,
          "disposition": e.result.disposition.value,
          "outcome": e.result.outcome.value if e.result.outcome else None,
          "rule": e.rule_name,
          "delivery_count": e.result.message.delivery_count,
          "reason": e.result.reason,
        }
        for e in report.entries
      ],
    }
    return json.dumps(data, indent=2)

  def format_topology(self, namespace: Namespace) -> str:
    return json.dumps(_topology_data(namespace), indent=2)


class MarkdownFormatter(OutputFormatter):
  """Markdown output formatter."""

  def format(self, report: RoutingReport) -> str:
    lines = [
      f"# Routing: {report.message.message_id}",
      "",
      f"**Namespace:** {report.namespace}",
      "",
      "## Summary",
      "",
      report.summary,
      "",
    ]

    if report.entries:
      lines.extend([
        "## Destinations",
        "",
        "| Destination | Disposition | Rule | Deliveries | Reason |",
        "| --- | --- | --- | --- | --- |",
      ])
      for e in report.entries:
        lines.append(
          f"| {e.entity} | {e.result.disposition.value} | {e.rule_name or '-'} "
          f"| {e.result.message.delivery_count} | {e.result.reason or ''} |"
        )
      lines.append("")

    return "\n".join(lines)

  def format_topology(self, namespace: Namespace) -> str:
    data = _topology_data(namespace)
    lines = [f"# Namespace: {data['namespace']}", ""]

    lines.extend(["## Queues", ""])
    for q in data["queues"]:
      lines.append(f"- **{q['display_name']}** (max deliveries {q['max_delivery_count']})")
    if not data["queues"]:
      lines.append("None.")
    lines.append("")

    lines.extend(["## Topics", ""])
    for t in data["topics"]:
      lines.append(f"### {t['display_name']}")
      lines.append("")
      for s in t["subscriptions"]:
        lines.append(f"- **{s['name']}** (max deliveries {s['max_delivery_count']})")
        for r in s["rules"]:
          lines.append(f"  - `{r['name']}`: {r['filter']}")
      lines.append("")
    if not data["topics"]:
      lines.extend(["None.", ""])

    return "\n".join(lines)


def get_formatter(format_type: str) -> OutputFormatter:
  """Get formatter by type name."""
  formatters = {
    "terminal": TerminalFormatter,
    "json": JsonFormatter,
    "markdown": MarkdownFormatter,
  }
  formatter_class = formatters.get(format_type)
  if not formatter_class:
    raise ValueError(f"Unknown format: {format_type}")
  return formatter_class()

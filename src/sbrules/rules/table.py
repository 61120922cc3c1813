"""Ordered rule table with first-match evaluation."""

import logging
import threading
from typing import Iterable, Iterator

from sbrules.models import Message
from sbrules.rules.base import Rule

logger = logging.getLogger(__name__)


class DuplicateRuleNameError(Exception):
  """A rule with the same name already exists in the table."""


class RuleNotFoundError(Exception):
  """No rule with the requested name exists in the table."""


def _check_unique(rules: Iterable[Rule]) -> tuple[Rule, ...]:
  seen: set[str] = set()
  for rule in rules:
    if rule.name in seen:
      raise DuplicateRuleNameError(f"Rule '{rule.name}' already exists")
    seen.add(rule.name)
  return tuple(rules)


class RuleTable:
  """Named rules evaluated in insertion order.

  Rules are held in an immutable tuple that is swapped on every change,
  so evaluation reads a consistent snapshot without taking a lock. Only
  writers serialize on the table's lock.

  Example:
    table = RuleTable()
    table.add(Rule("orders", CorrelationFilter(subject="orders")))
    rule = table.evaluate(message)
  """

  def __init__(self, rules: Iterable[Rule] = ()):
    self._rules: tuple[Rule, ...] = _check_unique(list(rules))
    self._write_lock = threading.Lock()

  def add(self, rule: Rule) -> None:
    """Append a rule.

    Raises:
      DuplicateRuleNameError: If a rule with the same name exists.
    """
    with self._write_lock:
      if rule.name in self.names():
        raise DuplicateRuleNameError(f"Rule '{rule.name}' already exists")
      self._rules = self._rules + (rule,)
    logger.debug("Added rule %s (%s filter)", rule.name, rule.filter.kind)

  def remove(self, name: str) -> Rule:
    """Remove and return the rule called `name`.

    Raises:
      RuleNotFoundError: If no such rule exists.
    """
    with self._write_lock:
      for index, rule in enumerate(self._rules):
        if rule.name == name:
          self._rules = self._rules[:index] + self._rules[index + 1:]
          break
      else:
        raise RuleNotFoundError(f"Rule '{name}' not found")
    logger.debug("Removed rule %s", name)
    return rule

  def replace(self, rules: Iterable[Rule]) -> None:
    """Swap the whole rule set at once.

    The new rules are validated before the swap; on error the table is
    left unchanged.
    """
    new_rules = _check_unique(list(rules))
    with self._write_lock:
      self._rules = new_rules
    logger.debug("Replaced rule table with %d rule(s)", len(new_rules))

  def get(self, name: str) -> Rule:
    for rule in self._rules:
      if rule.name == name:
        return rule
    raise RuleNotFoundError(f"Rule '{name}' not found")

  def names(self) -> list[str]:
    return [rule.name for rule in self._rules]

  def evaluate(self, message: Message) -> Rule | None:
    """Return the earliest-added rule whose filter matches, or None."""
    for rule in self._rules:
      if rule.matches(message):
        return rule
    return None

  def evaluate_all(self, message: Message) -> list[Rule]:
    """Return every matching rule in insertion order.

    This is the fan-out view, where a message is delivered once per
    matching rule.
    """
    return [rule for rule in self._rules if rule.matches(message)]

  def __len__(self) -> int:
    return len(self._rules)

  def __iter__(self) -> Iterator[Rule]:
    return iter(self._rules)

  def __contains__(self, name: object) -> bool:
    return any(rule.name == name for rule in self._rules)

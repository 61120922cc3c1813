"""Subscription rules: filters, rule tables and filter registration."""

from sbrules.rules.base import DEFAULT_RULE_NAME, Filter, Rule, RuleAction
from sbrules.rules.boolean import FalseFilter, TrueFilter
from sbrules.rules.correlation import CorrelationFilter, matches
from sbrules.rules.registry import (
  FilterNotFoundError,
  FilterRegistry,
  create_filter,
  list_filters,
  register_filter,
)
from sbrules.rules.table import DuplicateRuleNameError, RuleNotFoundError, RuleTable

__all__ = [
  "DEFAULT_RULE_NAME",
  "CorrelationFilter",
  "DuplicateRuleNameError",
  "FalseFilter",
  "Filter",
  "FilterNotFoundError",
  "FilterRegistry",
  "Rule",
  "RuleAction",
  "RuleNotFoundError",
  "RuleTable",
  "TrueFilter",
  "create_filter",
  "list_filters",
  "matches",
  "register_filter",
]

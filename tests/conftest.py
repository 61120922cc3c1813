"""Pytest fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from sbrules.models import DeliveryPolicy, Message
from sbrules.rules import CorrelationFilter, Rule, RuleTable


class FakeClock:
  """Manually advanced clock for expiry tests."""

  def __init__(self, now: datetime):
    self.now = now

  def __call__(self) -> datetime:
    return self.now

  def advance(self, delta: timedelta) -> None:
    self.now += delta


@pytest.fixture
def start_time() -> datetime:
  return datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time: datetime) -> FakeClock:
  return FakeClock(start_time)


@pytest.fixture
def sample_message(start_time: datetime) -> Message:
  return Message(
    message_id="msgid1",
    content_type="application/text",
    correlation_id="id1",
    subject="subject1",
    reply_to="someQueue",
    reply_to_session_id="sessionId",
    session_id="session1",
    send_to="xyz",
    enqueued_at=start_time,
  )


@pytest.fixture
def sample_filter() -> CorrelationFilter:
  return CorrelationFilter(
    content_type="application/text",
    correlation_id="id1",
    subject="subject1",
    message_id="msgid1",
    reply_to="someQueue",
    reply_to_session_id="sessionId",
    session_id="session1",
    send_to="xyz",
  )


@pytest.fixture
def sample_rule_table(sample_filter: CorrelationFilter) -> RuleTable:
  return RuleTable([Rule("app-prop-filter-1", sample_filter)])


@pytest.fixture
def default_policy() -> DeliveryPolicy:
  return DeliveryPolicy(max_delivery_count=10)


@pytest.fixture
def sample_config() -> str:
  return """
namespace: servicebus
queues:
  - name: queueOne
    display_name: queue1
    dead_lettering_on_message_expiration: false
topics:
  - name: topicOne
    display_name: topic1
    subscriptions:
      - name: sub1
        max_delivery_count: 10
        rules:
          - name: app-prop-filter-1
            filter:
              correlation_id: id1
              subject: subject1
      - name: all
"""

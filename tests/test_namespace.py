"""Tests for namespace entities and routing."""

from datetime import datetime, timedelta, timezone

import pytest
import yaml
from sbrules.config import parse_config
from sbrules.models import DeliveryPolicy, Disposition, Message
from sbrules.namespace import (
  EntityExistsError,
  EntityNotFoundError,
  Namespace,
  build_namespace,
)
from sbrules.routing import route_message
from sbrules.rules import CorrelationFilter, Rule, RuleTable, TrueFilter


@pytest.fixture
def namespace(sample_config: str) -> Namespace:
  return build_namespace(parse_config(yaml.safe_load(sample_config)))


class TestBuildNamespace:
  def test_builds_queues_and_topics(self, namespace: Namespace) -> None:
    queue = namespace.queue("queueOne")
    topic = namespace.topic("topicOne")

    assert namespace.name == "servicebus"
    assert queue.display_name == "queue1"
    assert queue.policy.dead_lettering_on_expiration is False
    assert topic.display_name == "topic1"
    assert [s.name for s in topic.subscriptions] == ["sub1", "all"]

  def test_subscription_rules_built_from_config(self, namespace: Namespace) -> None:
    sub = namespace.topic("topicOne").subscription("sub1")

    assert sub.policy.max_delivery_count == 10
    assert sub.rules.names() == ["app-prop-filter-1"]
    assert sub.rules.get("app-prop-filter-1").filter == CorrelationFilter(
      correlation_id="id1", subject="subject1"
    )

  def test_unknown_entities_raise(self, namespace: Namespace) -> None:
    with pytest.raises(EntityNotFoundError):
      namespace.queue("missing")
    with pytest.raises(EntityNotFoundError):
      namespace.topic("missing")
    with pytest.raises(EntityNotFoundError):
      namespace.topic("topicOne").subscription("missing")


class TestEntities:
  def test_duplicate_queue_rejected(self) -> None:
    namespace = Namespace("ns")
    namespace.add_queue("q")

    with pytest.raises(EntityExistsError):
      namespace.add_queue("q")

  def test_duplicate_topic_rejected(self) -> None:
    namespace = Namespace("ns")
    namespace.add_topic("t")

    with pytest.raises(EntityExistsError):
      namespace.add_topic("t")

  def test_duplicate_subscription_rejected(self) -> None:
    topic = Namespace("ns").add_topic("t")
    topic.add_subscription("s", DeliveryPolicy())

    with pytest.raises(EntityExistsError):
      topic.add_subscription("s", DeliveryPolicy())

  def test_queue_passes_everything_through(self) -> None:
    queue = Namespace("ns").add_queue("q", DeliveryPolicy(max_delivery_count=2))

    result = queue.send(Message(subject="x"))

    assert result.accepted
    assert queue.dispatcher.name == "q"

  def test_subscriptions_track_deliveries_independently(self) -> None:
    topic = Namespace("ns").add_topic("t")
    one = topic.add_subscription("one", DeliveryPolicy(max_delivery_count=1))
    topic.add_subscription("two", DeliveryPolicy(max_delivery_count=5))
    message = Message(message_id="m")

    topic.publish(message)
    one.dispatcher.abandon("m")
    results = topic.publish(message)

    assert results["one"].disposition == Disposition.DEAD_LETTERED
    assert results["two"].disposition == Disposition.ACCEPTED

  def test_publish_fans_out_by_subscription_rules(self) -> None:
    topic = Namespace("ns").add_topic("t")
    topic.add_subscription(
      "orders",
      DeliveryPolicy(),
      RuleTable([Rule("orders", CorrelationFilter(subject="orders"))]),
    )
    topic.add_subscription(
      "audit", DeliveryPolicy(), RuleTable([Rule("$Default", TrueFilter())])
    )

    results = topic.publish(Message(subject="refunds"))

    assert results["orders"].disposition == Disposition.SKIPPED
    assert results["audit"].disposition == Disposition.ACCEPTED

  def test_expired_message_dead_letters_only_where_it_matches(self) -> None:
    topic = Namespace("ns").add_topic("t")
    policy = DeliveryPolicy(dead_lettering_on_expiration=True)
    orders = topic.add_subscription(
      "orders", policy, RuleTable([Rule("orders", CorrelationFilter(subject="orders"))])
    )
    billing = topic.add_subscription(
      "billing", policy, RuleTable([Rule("billing", CorrelationFilter(subject="billing"))])
    )
    message = Message(
      subject="billing",
      enqueued_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
      time_to_live=timedelta(seconds=30),
    )

    results = topic.publish(message)

    assert results["orders"].disposition == Disposition.SKIPPED
    assert orders.dispatcher.dead_letter_queue == ()
    assert results["billing"].disposition == Disposition.DEAD_LETTERED
    assert len(billing.dispatcher.dead_letter_queue) == 1


class TestRouteMessage:
  def test_routes_to_all_topics_by_default(
    self, namespace: Namespace, sample_message: Message
  ) -> None:
    report = route_message(namespace, sample_message)

    entities = [e.entity for e in report.entries]
    assert entities == ["topic1/sub1", "topic1/all"]
    assert len(report.accepted) == 2
    assert report.entries[0].rule_name == "app-prop-filter-1"
    assert report.summary == "Routed to 2 destinations: 2 accepted."

  def test_routes_to_queue_only(self, namespace: Namespace) -> None:
    report = route_message(namespace, Message(), queue="queueOne")

    assert [e.entity for e in report.entries] == ["queueOne"]

  def test_skipped_subscriptions_reported(self, namespace: Namespace) -> None:
    report = route_message(namespace, Message(subject="other"), topic="topicOne")

    dispositions = {e.entity: e.result.disposition for e in report.entries}
    assert dispositions == {
      "topic1/sub1": Disposition.SKIPPED,
      "topic1/all": Disposition.ACCEPTED,
    }
    assert report.summary == "Routed to 2 destinations: 1 accepted, 1 skipped."

  def test_empty_namespace_summary(self) -> None:
    report = route_message(Namespace("ns"), Message())

    assert report.entries == []
    assert report.summary == "No queues or subscriptions to route to."

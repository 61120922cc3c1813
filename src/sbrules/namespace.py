"""In-memory queues, topics and subscriptions built from configuration."""

import logging

from sbrules.config import Settings
from sbrules.config.settings import FilterSettings, RuleSettings, SubscriptionSettings
from sbrules.dispatch import DispatchResult, Dispatcher
from sbrules.models import DeliveryPolicy, Message
from sbrules.rules import Filter, Rule, RuleAction, RuleTable, create_filter

logger = logging.getLogger(__name__)


class EntityNotFoundError(Exception):
  """No queue, topic or subscription with the requested name."""


class EntityExistsError(Exception):
  """An entity with the same name already exists in its parent."""


class Queue:
  """A queue: a dispatcher without a rule table."""

  def __init__(self, name: str, policy: DeliveryPolicy, display_name: str | None = None):
    self.name = name
    self.display_name = display_name or name
    self.policy = policy
    self.dispatcher = Dispatcher(policy, name=self.display_name)

  def send(self, message: Message) -> DispatchResult:
    return self.dispatcher.dispatch(message)


class Subscription:
  """A named, independently filtered view over a topic."""

  def __init__(
    self,
    name: str,
    policy: DeliveryPolicy,
    rules: RuleTable | None = None,
    topic_name: str = "",
  ):
    self.name = name
    self.policy = policy
    self.rules = rules if rules is not None else RuleTable()
    path = f"{topic_name}/{name}" if topic_name else name
    self.dispatcher = Dispatcher(policy, self.rules, name=path)


class Topic:
  """A topic that fans each published message out to its subscriptions."""

  def __init__(self, name: str, display_name: str | None = None):
    self.name = name
    self.display_name = display_name or name
    self._subscriptions: dict[str, Subscription] = {}

  @property
  def subscriptions(self) -> list[Subscription]:
    return list(self._subscriptions.values())

  def add_subscription(
    self,
    name: str,
    policy: DeliveryPolicy,
    rules: RuleTable | None = None,
  ) -> Subscription:
    if name in self._subscriptions:
      raise EntityExistsError(
        f"Subscription '{name}' already exists on topic '{self.display_name}'"
      )
    subscription = Subscription(name, policy, rules, topic_name=self.display_name)
    self._subscriptions[name] = subscription
    return subscription

  def subscription(self, name: str) -> Subscription:
    if name not in self._subscriptions:
      raise EntityNotFoundError(
        f"Subscription '{name}' not found on topic '{self.display_name}'"
      )
    return self._subscriptions[name]

  def publish(self, message: Message) -> dict[str, DispatchResult]:
    """Offer the message to every subscription independently.

    Returns:
      Dispatch result per subscription name.
    """
    results = {
      name: subscription.dispatcher.dispatch(message)
      for name, subscription in self._subscriptions.items()
    }
    accepted = sum(1 for result in results.values() if result.accepted)
    logger.debug(
      "Topic %s: message %s accepted by %d of %d subscription(s)",
      self.display_name, message.message_id, accepted, len(results),
    )
    return results


class Namespace:
  """Container for the queues and topics of one messaging namespace."""

  def __init__(self, name: str):
    self.name = name
    self._queues: dict[str, Queue] = {}
    self._topics: dict[str, Topic] = {}

  @property
  def queues(self) -> list[Queue]:
    return list(self._queues.values())

  @property
  def topics(self) -> list[Topic]:
    return list(self._topics.values())

  def add_queue(
    self,
    name: str,
    policy: DeliveryPolicy | None = None,
    display_name: str | None = None,
  ) -> Queue:
    if name in self._queues:
      raise EntityExistsError(f"Queue '{name}' already exists")
    queue = Queue(name, policy or DeliveryPolicy(), display_name)
    self._queues[name] = queue
    return queue

  def add_topic(self, name: str, display_name: str | None = None) -> Topic:
    if name in self._topics:
      raise EntityExistsError(f"Topic '{name}' already exists")
    topic = Topic(name, display_name)
    self._topics[name] = topic
    return topic

  def queue(self, name: str) -> Queue:
    if name not in self._queues:
      raise EntityNotFoundError(f"Queue '{name}' not found")
    return self._queues[name]

  def topic(self, name: str) -> Topic:
    if name not in self._topics:
      raise EntityNotFoundError(f"Topic '{name}' not found")
    return self._topics[name]


def _build_filter(settings: FilterSettings) -> Filter:
  return create_filter(settings.kind, **settings.filter_fields())


def _build_rule(settings: RuleSettings) -> Rule:
  action = RuleAction(settings.action) if settings.action else None
  return Rule(name=settings.name, filter=_build_filter(settings.filter), action=action)


def _build_subscription(topic: Topic, settings: SubscriptionSettings) -> Subscription:
  policy = DeliveryPolicy(
    max_delivery_count=settings.max_delivery_count,
    dead_lettering_on_expiration=settings.dead_lettering_on_message_expiration,
    default_time_to_live=settings.default_message_time_to_live,
  )
  rules = RuleTable(_build_rule(rule) for rule in settings.rules)
  return topic.add_subscription(settings.name, policy, rules)


def build_namespace(settings: Settings) -> Namespace:
  """Create live entities for every queue and topic in the settings."""
  namespace = Namespace(settings.namespace)

  for queue_settings in settings.queues:
    policy = DeliveryPolicy(
      max_delivery_count=queue_settings.max_delivery_count,
      dead_lettering_on_expiration=queue_settings.dead_lettering_on_message_expiration,
      default_time_to_live=queue_settings.default_message_time_to_live,
    )
    namespace.add_queue(queue_settings.name, policy, queue_settings.display_name)

  for topic_settings in settings.topics:
    topic = namespace.add_topic(topic_settings.name, topic_settings.display_name)
    for subscription_settings in topic_settings.subscriptions:
      _build_subscription(topic, subscription_settings)

  logger.debug(
    "Built namespace %s: %d queue(s), %d topic(s)",
    namespace.name, len(namespace.queues), len(namespace.topics),
  )
  return namespace

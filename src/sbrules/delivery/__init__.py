"""Delivery attempt tracking."""

from sbrules.delivery.tracker import DeliveryTracker

__all__ = ["DeliveryTracker"]

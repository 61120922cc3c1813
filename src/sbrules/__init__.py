"""Correlation-filter routing and dead-letter dispatch for Service Bus style messaging."""

__version__ = "0.1.0"

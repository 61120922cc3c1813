"""Configuration management."""

from sbrules.config.loader import ConfigError, load_config, load_message, parse_config
from sbrules.config.settings import Settings

__all__ = ["ConfigError", "Settings", "load_config", "load_message", "parse_config"]

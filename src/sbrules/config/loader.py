"""Configuration file loading."""

import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from sbrules.config.settings import MessageSettings, Settings
from sbrules.models import Message

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = [".sbrules.yaml", ".sbrules.yml", "sbrules.yaml", "sbrules.yml"]


class ConfigError(Exception):
  """Configuration file is missing or invalid."""


def _find_config_file(config_path: Path | None = None) -> Path | None:
  """Find config file path, or None if no config exists."""
  if config_path:
    return config_path

  for filename in CONFIG_FILENAMES:
    path = Path.cwd() / filename
    if path.exists():
      return path

  return None


def load_config(config_path: Path | None = None) -> Settings:
  """Load configuration from file or defaults.

  Raises:
    ConfigError: If an explicit path does not exist or the file is invalid.
  """
  path = _find_config_file(config_path)
  if path:
    return _load_from_file(path)
  logger.debug("No config file found, using defaults")
  return Settings()


def _read_document(path: Path) -> dict:
  if not path.exists():
    raise ConfigError(f"File not found: {path}")

  with open(path) as f:
    try:
      if path.suffix == ".json":
        data = json.load(f)
      else:
        data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
      raise ConfigError(f"Could not parse {path}: {e}") from e

  data = data or {}
  if not isinstance(data, dict):
    raise ConfigError(f"{path} must contain a mapping at the top level")
  return data


def _load_from_file(path: Path) -> Settings:
  """Load settings from a YAML file."""
  logger.debug("Loading config from %s", path)
  return parse_config(_read_document(path))


def parse_config(data: dict) -> Settings:
  """Validate a config mapping into Settings."""
  try:
    return Settings.model_validate(data)
  except ValidationError as e:
    raise ConfigError(f"Invalid configuration: {e}") from e


def load_message(path: Path) -> Message:
  """Load a single message from a JSON or YAML file."""
  data = _read_document(path)
  try:
    return MessageSettings.model_validate(data).to_message()
  except ValidationError as e:
    raise ConfigError(f"Invalid message: {e}") from e

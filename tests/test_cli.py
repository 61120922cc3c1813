"""Tests for the command line interface."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from sbrules import __version__
from sbrules.cli import app
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, sample_config: str) -> Path:
  path = tmp_path / "topology.yaml"
  path.write_text(sample_config)
  return path


def _message_file(tmp_path: Path, **fields: str) -> Path:
  path = tmp_path / "message.json"
  path.write_text(json.dumps({"message_id": "m1", **fields}))
  return path


class TestVersion:
  def test_prints_version(self) -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


class TestValidate:
  def test_valid_config_lists_topology(self, config_file: Path) -> None:
    result = runner.invoke(app, ["validate", "--config", str(config_file), "--format", "json"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["topics"][0]["subscriptions"][0]["name"] == "sub1"

  def test_invalid_config_fails(self, tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("queues:\n  - name: q\n    max_delivery_count: 0\n")

    result = runner.invoke(app, ["validate", "--config", str(path)])

    assert result.exit_code == 1
    assert "Error:" in result.output

  def test_unknown_format_fails(self, config_file: Path) -> None:
    result = runner.invoke(app, ["validate", "--config", str(config_file), "--format", "xml"])

    assert result.exit_code == 1
    assert "Unknown format" in result.output


class TestRoute:
  def test_routes_message(self, tmp_path: Path, config_file: Path) -> None:
    message = _message_file(tmp_path, correlation_id="id1", subject="subject1")

    result = runner.invoke(
      app, ["route", str(message), "--config", str(config_file), "--format", "json"]
    )

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert [e["disposition"] for e in data["entries"]] == ["accepted", "accepted"]
    assert data["entries"][0]["rule"] == "app-prop-filter-1"

  def test_unknown_topic_fails(self, tmp_path: Path, config_file: Path) -> None:
    message = _message_file(tmp_path)

    result = runner.invoke(
      app, ["route", str(message), "--config", str(config_file), "--topic", "nope"]
    )

    assert result.exit_code == 1
    assert "Topic 'nope' not found" in result.output

  def test_exit_code_when_nothing_accepts(self, tmp_path: Path, config_file: Path) -> None:
    message = _message_file(tmp_path, subject="other")

    result = runner.invoke(app, [
      "route", str(message), "--config", str(config_file),
      "--topic", "topicOne", "--format", "json", "--exit-code",
    ])

    # The pass-through subscription still accepts it
    assert result.exit_code == 0

  def test_exit_code_set_when_only_skipped(self, tmp_path: Path) -> None:
    config = tmp_path / "only-filtered.yaml"
    config.write_text(
      "topics:\n"
      "  - name: t\n"
      "    subscriptions:\n"
      "      - name: s\n"
      "        rules:\n"
      "          - name: r\n"
      "            filter: {subject: orders}\n"
    )
    message = _message_file(tmp_path, subject="refunds")

    result = runner.invoke(app, [
      "route", str(message), "--config", str(config), "--format", "json", "--exit-code",
    ])

    assert result.exit_code == 1

  @patch("sbrules.cli.run_route")
  def test_unexpected_error_reported(self, mock_route: patch, tmp_path: Path) -> None:
    mock_route.side_effect = RuntimeError("boom")

    result = runner.invoke(app, ["route", str(_message_file(tmp_path))])

    assert result.exit_code == 1
    assert "boom" in result.output

"""CLI interface using Typer."""

import logging
import os
import traceback
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from sbrules import __version__
from sbrules.config import ConfigError, load_config
from sbrules.namespace import EntityNotFoundError, build_namespace
from sbrules.output import get_formatter
from sbrules.routing import run_route

app = typer.Typer(
  name="sbrules",
  help="Subscription rule evaluation and dead-letter dispatch",
  no_args_is_help=True,
)

console = Console()
_err_console = Console(stderr=True)

FORMAT_HELP = "Output format: terminal, json, markdown"


def _is_debug() -> bool:
  return os.environ.get("SBRULES_DEBUG", "").lower() in ("1", "true", "yes")


def _configure_logging(debug: bool) -> None:
  logging.basicConfig(
    level=logging.DEBUG if debug else logging.WARNING,
    format="%(message)s",
    handlers=[RichHandler(console=_err_console, show_path=False)],
    force=True,
  )


def _fail(error: Exception, show_traceback: bool) -> None:
  console.print(f"[red]Error:[/red] {escape(str(error))}")
  if show_traceback:
    console.print("\n[dim]Traceback:[/dim]")
    console.print(traceback.format_exc(), markup=False)
  raise typer.Exit(1) from None


def version_callback(value: bool) -> None:
  if value:
    console.print(f"sbrules {__version__}")
    raise typer.Exit()


@app.callback()
def main(
  debug: bool = typer.Option(False, "--debug", "-d", help="Verbose logging and tracebacks"),
  version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
) -> None:
  """Evaluate Service Bus style subscription rules locally."""
  _configure_logging(debug or _is_debug())


@app.command()
def validate(
  config: Path = typer.Option(None, "--config", "-c", help="Config file path"),
  format_type: str = typer.Option("terminal", "--format", help=FORMAT_HELP),
) -> None:
  """Validate a topology config and list its entities."""
  show_traceback = _is_debug() or logging.getLogger().isEnabledFor(logging.DEBUG)
  try:
    namespace = build_namespace(load_config(config))
    output = get_formatter(format_type).format_topology(namespace)
    if output:
      console.print(output, markup=False, highlight=False, soft_wrap=True)
  except (ConfigError, ValueError) as e:
    _fail(e, show_traceback=False)
  except Exception as e:
    _fail(e, show_traceback)


@app.command()
def route(
  message: Path = typer.Argument(..., help="JSON or YAML file describing the message"),
  config: Path = typer.Option(None, "--config", "-c", help="Config file path"),
  topic: str = typer.Option(None, "--topic", "-t", help="Publish to this topic only"),
  queue: str = typer.Option(None, "--queue", "-q", help="Send to this queue"),
  format_type: str = typer.Option("terminal", "--format", help=FORMAT_HELP),
  exit_code: bool = typer.Option(
    False, "--exit-code", help="Exit 1 if no queue or subscription accepted the message"
  ),
) -> None:
  """Show which queues and subscriptions accept a message."""
  show_traceback = _is_debug() or logging.getLogger().isEnabledFor(logging.DEBUG)
  try:
    report = run_route(message, config_path=config, topic=topic, queue=queue)
    output = get_formatter(format_type).format(report)
    if output:
      console.print(output, markup=False, highlight=False, soft_wrap=True)
  except (ConfigError, EntityNotFoundError, ValueError) as e:
    _fail(e, show_traceback=False)
  except Exception as e:
    _fail(e, show_traceback)

  if exit_code and not report.accepted:
    raise typer.Exit(1)


if __name__ == "__main__":
  app()

#!/usr/bin/env python3
"""
DCB CLI - Dynamic Consistency Boundary event log tools

Main entrypoint for the dcb command-line tool.
"""

import sys

import typer
from rich.console import Console
from rich.table import Table

from dcb.config import MetricsConfig
from dcb.logging_config import setup_logging
from dcb.metrics import start_metrics_server
from dcb_cli.commands import log, scenarios

# Initialize Typer app
app = typer.Typer(
    name="dcb",
    help="Dynamic Consistency Boundary event log CLI",
    add_completion=False,
)

# Console for rich output
console = Console()

# Add command groups
app.add_typer(log.app, name="log", help="Event log operations")

# Add standalone commands
app.command("scenarios")(scenarios.scenarios_command)


@app.command()
def version():
    """Show version information."""
    from dcb import __version__ as engine_version
    from dcb_cli import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]DCB CLI[/bold]", f"v{__version__}")
    table.add_row("Engine", f"v{engine_version}")

    console.print(table)


def main():
    """Main entrypoint."""
    # stdout carries command output (including --json)
    setup_logging(stream=sys.stderr)
    config = MetricsConfig.from_env()
    start_metrics_server(enabled=config.enabled, port=config.port)
    app()


if __name__ == "__main__":
    main()

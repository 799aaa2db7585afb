"""
Scenarios command: Run the example domain scenarios
"""

import json
from dataclasses import asdict
from typing import Optional

import typer
from rich.console import Console

from dcb.domains import DOMAINS
from dcb.scenario import run_scenarios

console = Console()


def scenarios_command(
    domain: Optional[str] = typer.Argument(None, help="Domain to run (default: all)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Run the given/when/expect scenarios of the example domains.

    Exits with code 1 if any scenario fails.

    Examples:
        dcb scenarios
        dcb scenarios course-subscription
        dcb scenarios --json
    """
    if domain is not None and domain not in DOMAINS:
        message = f"Unknown domain: {domain} (known: {', '.join(DOMAINS)})"
        if json_output:
            print(json.dumps({"error": message}))
        else:
            console.print(f"[red]Error:[/red] {message}")
        raise typer.Exit(2)

    selected = [domain] if domain else list(DOMAINS)
    report = {}
    failed = 0
    for name in selected:
        api_cls, scenarios = DOMAINS[name]
        results = run_scenarios(api_cls, scenarios)
        failed += sum(1 for r in results if not r.passed)
        report[name] = results

    if json_output:
        print(
            json.dumps(
                {
                    "domains": {
                        name: [asdict(r) for r in results] for name, results in report.items()
                    },
                    "failed": failed,
                },
                indent=2,
            )
        )
    else:
        for name, results in report.items():
            console.print(f"\n[bold]{name}[/bold]")
            for r in results:
                status = "[green]PASS[/green]" if r.passed else "[red]FAIL[/red]"
                console.print(f"  {status} {r.description}: {r.message}", highlight=False)
        total = sum(len(results) for results in report.values())
        console.print(f"\n[bold]{total - failed}/{total} scenarios passed[/bold]")

    if failed:
        raise typer.Exit(1)

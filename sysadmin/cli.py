"""
Sysadmin CLI - plan and deploy the shared system administrator account.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core import SysadminCore
from .resources.base import Resource
from .settings import get_settings

app = typer.Typer(
    name="sysadmin",
    help="Provision a shared system administrator account",
    add_completion=False,
)
console = Console()

FileOption = typer.Option(
    None, "--file", "-f", help="Declarations file (default: ./main.py)"
)
OSOption = typer.Option(
    None, "--os", help="Operating system name, overrides detection (e.g. ubuntu)"
)


def configure_logging() -> None:
    """Root logging at the level from SYSADMIN_LOG_LEVEL."""
    level = get_settings().log_level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


@app.callback()
def main():
    """Provision a shared system administrator account."""
    configure_logging()


def _get_main_file(main_file: Path | None) -> Path:
    """The declarations file, ./main.py unless given.

    Raises:
        typer.Exit: If the file does not exist
    """
    main_file = main_file or Path.cwd() / "main.py"
    if not main_file.exists():
        console.print(
            f"[bold red]✗ Error:[/bold red] No {main_file.name} found in {main_file.parent}"
        )
        console.print(
            "[dim]Hint: cd into the directory that declares your SysadminAccount, or pass --file[/dim]"
        )
        raise typer.Exit(code=1)
    return main_file


def _fail(action: str, message: Any) -> None:
    console.print(f"\n[bold red]✗ {action} failed:[/bold red] {message}")
    raise typer.Exit(code=1)


def _run_command(
    action: str,
    color: str,
    core_method: str,
    main_file: Path | None,
    os_name: str | None = None,
) -> Any:
    """Call one SysadminCore pipeline on the declarations file.

    Any error is printed and turns into exit code 1.

    Args:
        action: Name shown in the banner and in error messages
        color: Banner border color
        core_method: SysadminCore method taking the declarations file
        main_file: Declarations file (default: ./main.py)
        os_name: Operating system override

    Returns:
        Whatever the pipeline returned
    """
    main_file = _get_main_file(main_file)
    console.print(
        Panel.fit(
            f"[bold {color}]Sysadmin {action}[/bold {color}]\n"
            f"Declarations: {main_file}\n"
            f"Stack: {get_settings().stack_name}",
            border_style=color,
        )
    )

    try:
        result = getattr(SysadminCore(os_name=os_name), core_method)(main_file)
        if asyncio.iscoroutine(result):
            result = asyncio.run(result)
    except Exception as e:
        _fail(action, e)
    return result


def _print_outcome(action: str, result: dict[str, Any]) -> None:
    """Report an up or destroy result, exiting 1 when it failed."""
    if not result.get("success"):
        _fail(action, result.get("error", "Unknown error"))

    console.print(f"\n[bold green]✓ {action} succeeded[/bold green]")
    summary = result.get("summary") or {}
    changes = summary.get("resource_changes") or {}
    console.print(f"[dim]Result: {summary.get('result', 'unknown')}[/dim]")
    if changes:
        console.print(
            "[dim]Resources: "
            + " ".join(f"{op} {count}" for op, count in sorted(changes.items()))
            + "[/dim]"
        )


@app.command()
def apply(main_file: Path = FileOption, os_name: str = OSOption):
    """Plan the declared accounts and deploy them with Pulumi."""
    result = _run_command("Apply", "blue", "apply", main_file, os_name)
    _print_outcome("Apply", result)


@app.command()
def plan(main_file: Path = FileOption, os_name: str = OSOption):
    """Preview the changes apply would make."""
    result = _run_command("Plan", "cyan", "plan", main_file, os_name)

    console.print(f"\n[bold]Declared resources:[/bold] {result['resources']}")
    preview = result.get("preview", {})
    if not preview.get("success"):
        console.print(
            f"\n[yellow]⚠ Preview error:[/yellow] {preview.get('error', 'unknown')}"
        )
        return

    summary = preview.get("summary") or {}
    changes = summary.get("change_summary") or {}
    console.print("\n[bold]Pending changes:[/bold]")
    for op in ("create", "update", "replace", "delete"):
        console.print(f"  {op:<8} {changes.get(op, 0)}")
    console.print(f"  {'total':<8} {summary.get('total_changes', 0)}")
    console.print("\n[dim]Run 'sysadmin apply' to deploy.[/dim]")


@app.command()
def destroy(main_file: Path = FileOption):
    """Remove the accounts in the stack. Their home trees and sshd directives stay on disk."""
    result = _run_command("Destroy", "red", "destroy", main_file)
    _print_outcome("Destroy", result)


def _target(resource: Resource) -> str:
    """What a resource manages, for the show table."""
    described = resource.describe()
    if described.get("present") is False:
        return "absent"
    if "directive" in described:
        return f"{described['directive']} {described['value']}"
    return described.get("path") or described.get("home") or ""


@app.command()
def show(main_file: Path = FileOption, os_name: str = OSOption):
    """List the declared resources without contacting Pulumi."""
    resources = _run_command("Show", "green", "show", main_file, os_name)

    table = Table(title="Declared resources")
    table.add_column("Type", style="cyan")
    table.add_column("Name")
    table.add_column("Target")
    table.add_column("Depends on", style="dim")
    for resource in resources:
        table.add_row(
            type(resource).__name__,
            resource.name or "",
            _target(resource),
            ", ".join(dep.name or "" for dep in resource.connections),
        )
    console.print(table)


@app.command()
def render(
    main_file: Path = FileOption,
    os_name: str = OSOption,
    login: str = typer.Option(
        None, "--login", help="Account to render when several are declared"
    ),
):
    """Print the assembled config file of the account."""
    main_file = _get_main_file(main_file)
    try:
        content = SysadminCore(os_name=os_name).render(main_file, login=login)
    except Exception as e:
        _fail("Render", e)
    console.print(
        content, markup=False, highlight=False, emoji=False, soft_wrap=True, end=""
    )


@app.command()
def version():
    """Show sysadmin version."""
    console.print(f"sysadmin version: [bold]{__version__}[/bold]")


if __name__ == "__main__":
    app()

"""Show command — summarise the saved package state."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import NixPkgDiffError
from ..state import load_state
from . import app
from ._common import console, resolve_config


@app.command()
def show(
    state: Optional[Path] = typer.Option(
        None, "--state", "-s",
        help="Saved state to show",
        dir_okay=False,
    ),
    packages: bool = typer.Option(
        False, "--packages", "-p",
        help="List every saved package",
    ),
) -> None:
    """Show what the saved state contains."""
    try:
        settings = resolve_config(state=state)
        snapshot = load_state(settings.state_path)
    except NixPkgDiffError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold cyan]Saved state[/bold cyan] ({settings.state_path})")
    console.print(f"  saved: {snapshot.timestamp or '(unknown)'}")
    console.print(f"  source: {snapshot.source or '(unknown)'}")
    console.print(f"  tool version: {snapshot.tool_version or '(unknown)'}")
    console.print(
        f"  packages: {len(snapshot.packages)}, dependency records: {snapshot.dependency_count}"
    )

    if not packages:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Package")
    table.add_column("Version")
    table.add_column("Deps", justify="right")
    for identity in sorted(snapshot.packages):
        pkg = snapshot.packages[identity]
        table.add_row(identity, pkg.primary.version, str(len(pkg.dependencies)))
    console.print(table)

"""Save command — record the current package state."""

from pathlib import Path
from typing import Optional

import typer

from ..exceptions import NixPkgDiffError
from ..logging_config import get_logger
from ..sources import open_source
from ..state import save_state
from ..store.builder import build_snapshot
from . import app
from ._common import configure_logging, console, resolve_config


@app.command()
def save(
    state: Optional[Path] = typer.Option(
        None, "--state", "-s",
        help="State file to write (default: ~/.local/share/nix-pkgdiff/packages.json)",
        dir_okay=False,
    ),
    source: Optional[str] = typer.Option(
        None, "--source",
        help="Where to read packages from: database or command",
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c",
        help="Configuration file path (TOML format)",
        exists=True, file_okay=True, dir_okay=False, readable=True,
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w",
        help="Parallel dependency lookups",
        min=1, max=32, hidden=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Enable debug logging",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Only log errors",
    ),
) -> None:
    """Save the current package state. Run this before a system update."""
    logger = get_logger()

    try:
        settings = resolve_config(
            config=config, source=source, state=state, workers=workers,
            verbose=verbose, quiet=quiet,
        )
        logger = configure_logging(settings)
        with open_source(settings) as store_source:
            snapshot = build_snapshot(store_source, settings)

        save_state(snapshot, settings.state_path)
        console.print(
            f"[green]Saved {len(snapshot.packages)} package(s) to {settings.state_path}[/green]"
        )

    except typer.Exit:
        raise
    except NixPkgDiffError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Unexpected error in save")
        console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)

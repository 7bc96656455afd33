"""Diff command — compare the saved package state with the current system."""

import logging
from pathlib import Path
from typing import Optional

import typer

from ..exceptions import NixPkgDiffError
from ..logging_config import get_logger
from . import app
from ._common import configure_logging, console, resolve_config


@app.command(name="diff")
def diff_cmd(
    state: Optional[Path] = typer.Option(
        None, "--state", "-s",
        help="Saved state to compare against",
        dir_okay=False,
    ),
    source: Optional[str] = typer.Option(
        None, "--source",
        help="Where to read packages from: database or command",
    ),
    json_output: bool = typer.Option(
        False, "--json",
        help="Output in machine-readable JSON format",
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
    """Show which packages changed since the state was saved.

    Packages whose own version changed are listed first, with the
    dependencies that changed under them marked [yellow]^[/yellow].
    Dependencies with one version across the whole system are listed
    once, as global dependency updates.

    [bold cyan]Examples:[/bold cyan]

      nix-pkgdiff diff

      nix-pkgdiff diff --json

      nix-pkgdiff diff --source command --state /tmp/before.json
    """
    logger = get_logger()

    from ..diff import diff_snapshots
    from ..sources import open_source
    from ..state import load_state
    from ..store.builder import build_snapshot
    from ._diff_output import PackageDiffFormatter

    try:
        settings = resolve_config(
            config=config, source=source, state=state, workers=workers,
            verbose=verbose, quiet=quiet,
        )
        logger = configure_logging(settings)

        # ── Step 1: Load the saved state first, before any slow queries ──
        old_snapshot = load_state(settings.state_path)

        # ── Step 2: Capture the current system ───────────────────────────
        with open_source(settings) as store_source:
            new_snapshot = build_snapshot(store_source, settings)

        # ── Step 3: Compute diff ─────────────────────────────────────────
        diff = diff_snapshots(old_snapshot, new_snapshot, workers=settings.effective_workers)

        # ── Step 4: Render ───────────────────────────────────────────────
        formatter = PackageDiffFormatter(console=console)
        formatter.render(diff, fmt="json" if json_output else "rich")

    except typer.Exit:
        raise
    except NixPkgDiffError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Unexpected error in diff")
        console.print(f"[red]Unexpected error:[/red] {e}")
        if logger.isEnabledFor(logging.DEBUG):
            console.print_exception()
        raise typer.Exit(1)

"""Shared CLI helpers."""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import DiffConfig, load_config
from ..logging_config import setup_logging

console = Console()


def resolve_config(
    config: Optional[Path] = None,
    source: Optional[str] = None,
    state: Optional[Path] = None,
    workers: Optional[int] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> DiffConfig:
    """Build configuration from CLI options."""
    overrides = {}
    if source is not None:
        overrides["source"] = source
    if state is not None:
        overrides["state_file"] = str(state)
    if workers is not None:
        overrides["workers"] = workers
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)


def configure_logging(settings: DiffConfig) -> logging.Logger:
    """Apply the resolved verbosity and log file to the nix_pkgdiff logger."""
    return setup_logging(
        verbose=settings.verbosity == "verbose",
        quiet=settings.verbosity == "quiet",
        log_file=settings.log_file,
    )

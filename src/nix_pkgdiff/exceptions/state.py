"""Saved-state exceptions."""

from pathlib import Path

from .base import NixPkgDiffError


class StateError(NixPkgDiffError):
    """Base class for errors reading or writing the saved package state."""
    pass


class StateNotFoundError(StateError):
    """Raised when no saved state exists yet."""

    def __init__(self, path: Path):
        super().__init__(
            f"No saved package state at {path}; run 'nix-pkgdiff save' first",
            details={"path": str(path)},
        )
        self.path = path


class StateFileError(StateError):
    """Raised when the saved state cannot be read, parsed or written."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Invalid package state file: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason

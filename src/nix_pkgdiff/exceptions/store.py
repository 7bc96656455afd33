"""Store access exceptions: database, dependency lookups, command output."""

from pathlib import Path
from typing import Optional, Sequence

from .base import NixPkgDiffError


class StoreError(NixPkgDiffError):
    """Base class for errors raised while reading the Nix store."""
    pass


class StoreAccessError(StoreError):
    """Raised when the Nix database cannot be opened."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Cannot open Nix database: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason


class DependencyLookupError(StoreError):
    """Raised when the dependency closure of a package cannot be fetched.

    A failed lookup aborts the whole comparison; a partial snapshot would
    show up as missing packages on the next diff.
    """

    def __init__(self, package: str, reason: str):
        super().__init__(
            f"Failed to look up dependencies of {package}",
            details={"package": package, "reason": reason},
        )
        self.package = package
        self.reason = reason


class CommandError(StoreError):
    """Raised when an external Nix command fails or cannot be run."""

    def __init__(
        self,
        command: Sequence[str],
        reason: str,
        returncode: Optional[int] = None,
    ):
        command_str = " ".join(command)
        details = {"command": command_str, "reason": reason}
        if returncode is not None:
            details["returncode"] = str(returncode)

        super().__init__(f"Command failed: {command_str}", details=details)
        self.command = list(command)
        self.reason = reason
        self.returncode = returncode


class MalformedOutputError(StoreError):
    """Raised when a command produced output we cannot make sense of."""

    def __init__(self, command: Sequence[str], reason: str):
        command_str = " ".join(command)
        super().__init__(
            f"Unexpected output from: {command_str}",
            details={"command": command_str, "reason": reason},
        )
        self.command = list(command)
        self.reason = reason

"""Exception hierarchy for nix-pkgdiff."""

from .base import NixPkgDiffError
from .config import ConfigurationError, InvalidConfigError
from .state import StateError, StateFileError, StateNotFoundError
from .store import (
    CommandError,
    DependencyLookupError,
    MalformedOutputError,
    StoreAccessError,
    StoreError,
)

__all__ = [
    "NixPkgDiffError",
    "StoreError",
    "StoreAccessError",
    "DependencyLookupError",
    "CommandError",
    "MalformedOutputError",
    "StateError",
    "StateNotFoundError",
    "StateFileError",
    "ConfigurationError",
    "InvalidConfigError",
]

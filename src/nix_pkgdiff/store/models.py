"""Data models for store records, packages and system snapshots."""

from dataclasses import dataclass, field
from typing import Dict, Optional

# Separator used to fold a suffix into a record's identity. Nix store names
# cannot contain it, so ``name|suffix`` never collides with a plain name.
SUFFIX_SEPARATOR = "|"


def make_identity(name: str, suffix: Optional[str] = None) -> str:
    """Return the identity key for a name and optional suffix."""
    if suffix:
        return f"{name}{SUFFIX_SEPARATOR}{suffix}"
    return name


@dataclass
class StoreRecord:
    """One parsed store path.

    Records are compared across snapshots by ``identity`` only: the version
    is what changes between snapshots, so it cannot be part of the key.
    ``origin`` is the raw store path, kept so a source can query the record's
    dependencies; it is never persisted.
    """

    name: str
    version: str
    suffix: Optional[str] = None
    registration_time: Optional[int] = None
    origin: Optional[str] = field(default=None, compare=False, repr=False)

    @property
    def identity(self) -> str:
        return make_identity(self.name, self.suffix)

    def __str__(self) -> str:
        return f"{self.identity}@{self.version}"


@dataclass
class Package:
    """A top-level system package and its deduplicated dependency closure.

    ``dependencies`` is keyed by identity and never contains the package's
    own identity.
    """

    primary: StoreRecord
    dependencies: Dict[str, StoreRecord] = field(default_factory=dict)

    @property
    def identity(self) -> str:
        return self.primary.identity

    @property
    def name(self) -> str:
        return self.primary.name


@dataclass
class SystemSnapshot:
    """Complete record of the installed packages at one point in time.

    ``shared_dependencies`` is only populated once the snapshot has been
    partitioned (see ``store.partition``). Saved snapshots hold the
    pre-partition package map.
    """

    # ── Metadata ──────────────────────────────────────────────────
    schema_version: int = 1
    tool_version: str = ""
    timestamp: str = ""  # ISO-8601
    source: str = ""

    # ── Packages ──────────────────────────────────────────────────
    packages: Dict[str, Package] = field(default_factory=dict)
    shared_dependencies: Dict[str, StoreRecord] = field(default_factory=dict)

    @property
    def dependency_count(self) -> int:
        return sum(len(pkg.dependencies) for pkg in self.packages.values())

"""Data models for snapshot diffing: version changes at record, package and system level."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..store.models import make_identity


@dataclass
class StoreChange:
    """Version change of one identity between two snapshots."""

    name: str
    suffix: Optional[str]
    old_version: str
    new_version: str

    @property
    def identity(self) -> str:
        return make_identity(self.name, self.suffix)

    def changed_positions(self) -> List[int]:
        """Indices of ``new_version`` characters that differ from ``old_version``.

        Characters are compared position by position; anything past the end
        of the old version counts as changed.
        """
        old = self.old_version
        return [
            idx
            for idx, char in enumerate(self.new_version)
            if idx >= len(old) or old[idx] != char
        ]


@dataclass
class PackageChange:
    """Changes to one top-level package: its own version and/or its dependencies."""

    name: str
    suffix: Optional[str] = None
    package: Optional[StoreChange] = None
    dependencies: List[StoreChange] = field(default_factory=list)

    @property
    def identity(self) -> str:
        return make_identity(self.name, self.suffix)

    @property
    def has_package_change(self) -> bool:
        return self.package is not None


@dataclass
class SystemDiff:
    """Complete diff between two system snapshots.

    Both lists are already in display order: package changes with a
    version change of their own first, then by number of dependency
    changes, then by name; shared changes by name.
    """

    old_timestamp: str
    new_timestamp: str
    package_changes: List[PackageChange] = field(default_factory=list)
    shared_changes: List[StoreChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.package_changes and not self.shared_changes

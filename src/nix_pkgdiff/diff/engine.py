"""Diff engine — computes version changes between two system snapshots.

The algorithm works in three steps:
  1. Partition both snapshots so system-wide dependencies are compared once,
     in the shared set, instead of under every package.
  2. Package-level: match packages by identity, diff each package's own
     version and its remaining dependencies.
  3. Shared-level: diff the two shared dependency sets.

Only changes are reported. Packages or dependencies that exist in just one
of the snapshots are not changes and are skipped.
"""

from typing import List, Mapping, Optional

from ..logging_config import get_logger
from ..store.models import Package, StoreRecord, SystemSnapshot
from ..store.partition import partition_snapshot
from .models import PackageChange, StoreChange, SystemDiff

logger = get_logger(__name__)


# ── Record level ─────────────────────────────────────────────────────────────

def diff_record(new: StoreRecord, old: StoreRecord) -> Optional[StoreChange]:
    """Compare two records already known to share an identity.

    Returns None when the version is unchanged, or when the suffixes differ:
    a build output tagged differently is a different thing that happens to
    share a name, not a new version of the same thing.
    """
    if new.version == old.version:
        return None

    if new.suffix != old.suffix:
        return None

    return StoreChange(
        name=new.name,
        suffix=new.suffix,
        old_version=old.version,
        new_version=new.version,
    )


def diff_records(
    new: Mapping[str, StoreRecord],
    old: Mapping[str, StoreRecord],
) -> List[StoreChange]:
    """Diff every record of ``new`` against the record with the same key in ``old``."""
    changes: List[StoreChange] = []

    for key, new_record in new.items():
        old_record = old.get(key)
        if old_record is None:
            continue

        change = diff_record(new_record, old_record)
        if change is not None:
            changes.append(change)

    return changes


# ── Package level ────────────────────────────────────────────────────────────

def diff_package(new: Package, old: Package) -> Optional[PackageChange]:
    """Diff one package; None if neither it nor its dependencies changed."""
    pkg_change = diff_record(new.primary, old.primary)
    dep_changes = diff_records(new.dependencies, old.dependencies)

    if pkg_change is None and not dep_changes:
        return None

    return PackageChange(
        name=new.primary.name,
        suffix=new.primary.suffix,
        package=pkg_change,
        dependencies=dep_changes,
    )


def diff_packages(
    new: Mapping[str, Package],
    old: Mapping[str, Package],
) -> List[PackageChange]:
    """Diff two package maps, skipping packages that only exist in ``new``."""
    changes: List[PackageChange] = []

    for key, new_pkg in new.items():
        old_pkg = old.get(key)
        if old_pkg is None:
            continue

        change = diff_package(new_pkg, old_pkg)
        if change is not None:
            changes.append(change)

    return changes


# ── Ordering ─────────────────────────────────────────────────────────────────

def sort_changes(changes: List[StoreChange]) -> List[StoreChange]:
    """Sort record changes by name (identity) ascending."""
    return sorted(changes, key=lambda c: c.identity)


def sort_package_changes(changes: List[PackageChange]) -> List[PackageChange]:
    """Sort package changes for display.

    Packages whose own version changed come first, then packages with more
    dependency changes, then by name. Dependency changes inside each
    package are sorted by name.
    """
    for change in changes:
        change.dependencies = sort_changes(change.dependencies)

    return sorted(
        changes,
        key=lambda c: (not c.has_package_change, -len(c.dependencies), c.identity),
    )


# ── Public API ───────────────────────────────────────────────────────────────

def diff_snapshots(
    old: SystemSnapshot,
    new: SystemSnapshot,
    workers: Optional[int] = None,
) -> SystemDiff:
    """Compute the version changes between two system snapshots.

    Both snapshots are partitioned in place first (a no-op for snapshots
    that already are).

    Args:
        old: The saved snapshot from before the system update.
        new: The snapshot of the current system.
        workers: Thread count for the partitioner's removal pass.

    Returns:
        A SystemDiff with both change lists in display order.
    """
    partition_snapshot(old, workers=workers)
    partition_snapshot(new, workers=workers)

    package_changes = diff_packages(new.packages, old.packages)
    shared_changes = diff_records(new.shared_dependencies, old.shared_dependencies)

    logger.info(
        "%d package update(s), %d shared dependency update(s)",
        len(package_changes),
        len(shared_changes),
    )

    return SystemDiff(
        old_timestamp=old.timestamp,
        new_timestamp=new.timestamp,
        package_changes=sort_package_changes(package_changes),
        shared_changes=sort_changes(shared_changes),
    )

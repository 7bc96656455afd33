"""Split system-wide dependencies out of per-package dependency sets.

A library such as glibc shows up in nearly every closure. When every
package that depends on it agrees on its version, listing it under each
package is noise; it is moved into a single shared set instead. A
dependency whose version differs between consumers stays with each
package, since that is exactly what a user wants to see per package.

The algorithm works in two passes:
  1. Scan: for every dependency identity, record whether more than one
     version occurs anywhere. A dependency can only be judged once all of
     its consumers have been seen, so nothing is removed in this pass.
  2. Remove: pop every single-version dependency out of each package and
     merge the popped records into the shared set.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import reduce
from typing import Dict, FrozenSet, Optional

from ..logging_config import get_logger
from .models import Package, StoreRecord, SystemSnapshot

logger = get_logger(__name__)

_PARALLEL_THRESHOLD = 10


@dataclass
class DependencyScan:
    """Per-identity scan state."""

    last_version: str
    has_multiple_versions: bool = False


def scan_dependency_versions(packages: Dict[str, Package]) -> Dict[str, DependencyScan]:
    """Fold over every dependency of every package, read-only."""
    scans: Dict[str, DependencyScan] = {}
    for package in packages.values():
        for identity, dep in package.dependencies.items():
            scan = scans.get(identity)
            if scan is None:
                scans[identity] = DependencyScan(last_version=dep.version)
            elif dep.version != scan.last_version:
                scan.has_multiple_versions = True
    return scans


def _take_shared(package: Package, shared_names: FrozenSet[str]) -> Dict[str, StoreRecord]:
    taken: Dict[str, StoreRecord] = {}
    for identity in shared_names:
        dep = package.dependencies.pop(identity, None)
        if dep is not None:
            taken[identity] = dep
    return taken


def _merge(acc: Dict[str, StoreRecord], part: Dict[str, StoreRecord]) -> Dict[str, StoreRecord]:
    # Every part holds the same version for a shared identity, so the
    # union does not depend on merge order.
    acc.update(part)
    return acc


def isolate_shared_dependencies(
    packages: Dict[str, Package],
    workers: Optional[int] = None,
) -> Dict[str, StoreRecord]:
    """Move single-version dependencies out of ``packages``.

    ``packages`` is modified in place.

    Args:
        packages: Package map, typically from ``build_packages``.
        workers: Thread count for the removal pass; ``None`` or 1 runs
            sequentially.

    Returns:
        The shared dependencies, keyed by identity.
    """
    scans = scan_dependency_versions(packages)
    shared_names = frozenset(
        identity for identity, scan in scans.items() if not scan.has_multiple_versions
    )

    if not shared_names:
        return {}

    pkg_list = list(packages.values())
    if not workers or workers <= 1 or len(pkg_list) < _PARALLEL_THRESHOLD:
        parts = [_take_shared(pkg, shared_names) for pkg in pkg_list]
    else:
        # Each worker mutates only its own package
        with ThreadPoolExecutor(max_workers=workers) as executor:
            parts = list(executor.map(lambda pkg: _take_shared(pkg, shared_names), pkg_list))

    shared = reduce(_merge, parts, {})

    logger.debug(
        "Isolated %d shared dependency record(s), %d name(s) stay per-package",
        len(shared),
        len(scans) - len(shared_names),
    )
    return shared


def partition_snapshot(snapshot: SystemSnapshot, workers: Optional[int] = None) -> SystemSnapshot:
    """Partition ``snapshot`` in place and return it.

    Running it again on a partitioned snapshot changes nothing: every
    dependency left in a package has several versions.
    """
    shared = isolate_shared_dependencies(snapshot.packages, workers=workers)
    snapshot.shared_dependencies.update(shared)
    return snapshot

"""Build packages and snapshots from a store source.

Each top-level package gets its dependency closure from an external lookup
(a database query or a ``nix-store -qR`` call). Lookups are independent,
so they are fanned out over a thread pool; every worker owns its result
and the results are merged once all of them are done.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional

from .. import __version__
from ..exceptions import DependencyLookupError, NixPkgDiffError
from ..logging_config import get_logger
from .dedupe import DEFAULT_WINDOW_SECONDS, deduplicate
from .models import Package, StoreRecord, SystemSnapshot

if TYPE_CHECKING:
    from ..config import DiffConfig
    from ..sources import StoreSource

logger = get_logger(__name__)

DependencyLookup = Callable[[StoreRecord], Iterable[StoreRecord]]

# Below this many packages the pool costs more than it saves
_PARALLEL_THRESHOLD = 10


def build_package(
    primary: StoreRecord,
    lookup: DependencyLookup,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
) -> Package:
    """Build one package from its dependency closure.

    The closure may contain the package itself; it is excluded by identity,
    whatever version it has. Lookup errors propagate unchanged.
    """
    own_identity = primary.identity
    closure = (rec for rec in lookup(primary) if rec.identity != own_identity)
    return Package(primary=primary, dependencies=deduplicate(closure, window_seconds))


def _build_or_raise(
    primary: StoreRecord,
    lookup: DependencyLookup,
    window_seconds: int,
) -> Package:
    try:
        return build_package(primary, lookup, window_seconds)
    except DependencyLookupError:
        raise
    except (NixPkgDiffError, OSError, ValueError) as e:
        raise DependencyLookupError(primary.identity, str(e)) from e


def build_packages(
    primaries: Iterable[StoreRecord],
    lookup: DependencyLookup,
    workers: Optional[int] = None,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
) -> Dict[str, Package]:
    """Build every package, keyed by identity.

    Args:
        primaries: Deduplicated top-level records.
        lookup: Returns the dependency closure of one record.
        workers: Thread count; ``None`` or 1 runs sequentially.
        window_seconds: Passed through to ``deduplicate``.

    Raises:
        DependencyLookupError: The first lookup that failed. Remaining
            lookups are cancelled; no partial result is returned.
    """
    primaries = list(primaries)
    packages: Dict[str, Package] = {}

    if not workers or workers <= 1 or len(primaries) < _PARALLEL_THRESHOLD:
        for primary in primaries:
            packages[primary.identity] = _build_or_raise(primary, lookup, window_seconds)
        return packages

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_build_or_raise, primary, lookup, window_seconds)
            for primary in primaries
        ]
        try:
            results: List[Package] = [future.result() for future in futures]
        except Exception:
            for future in futures:
                future.cancel()
            raise

    for package in results:
        packages[package.identity] = package

    return packages


def build_snapshot(source: "StoreSource", config: "DiffConfig") -> SystemSnapshot:
    """Capture the current system as a pre-partition snapshot."""
    window = config.duplicate_window_seconds
    primaries = deduplicate(source.system_records(), window)
    logger.info("Found %d system package(s) via %s", len(primaries), source.name)

    packages = build_packages(
        primaries.values(),
        source.dependency_records,
        workers=config.effective_workers,
        window_seconds=window,
    )

    snapshot = SystemSnapshot(
        tool_version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        source=source.name,
        packages=packages,
    )
    logger.debug(
        "Snapshot has %d package(s), %d dependency record(s)",
        len(snapshot.packages),
        snapshot.dependency_count,
    )
    return snapshot

"""Resolve store records that share an identity.

The Nix store routinely holds several versions of the same package: the
one the system uses and leftovers that have not been garbage collected
yet. Since a package can only be followed across snapshots by its
identity, each identity must resolve to exactly one record, or to none.

Rules, applied to the records of one identity newest first:

  - Same version as the newest record: redundant, ignored.
  - Different version, registered at least ``window_seconds`` earlier:
    a leftover from an older system update, the newest record wins.
  - Different version, registered within the window, or either record
    has no registration time: both came from the same update and neither
    is authoritative. The identity is dropped.

Dropping favours a missing line in the diff over a wrong one.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List

from ..logging_config import get_logger
from .models import StoreRecord

logger = get_logger(__name__)

DEFAULT_WINDOW_SECONDS = 3600


def _newest_first(records: Iterable[StoreRecord]) -> List[StoreRecord]:
    """Order by registration time, newest first.

    The sort is stable, so records without a time keep their input order
    (after all timed records) and ties keep theirs.
    """
    return sorted(
        records,
        key=lambda r: (r.registration_time is None, -(r.registration_time or 0)),
    )


def _is_ambiguous(newest: StoreRecord, other: StoreRecord, window_seconds: int) -> bool:
    if newest.version == other.version:
        return False
    if newest.registration_time is None or other.registration_time is None:
        return True
    return abs(newest.registration_time - other.registration_time) < window_seconds


def deduplicate(
    records: Iterable[StoreRecord],
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
) -> Dict[str, StoreRecord]:
    """Return one record per unambiguous identity.

    Args:
        records: Parsed records in any order.
        window_seconds: Registration-time distance below which two
            versions of one identity are considered to come from the
            same system update.

    Returns:
        Mapping of identity -> authoritative record.
    """
    # Phase 1: group by identity, newest first within each group
    groups: "OrderedDict[str, List[StoreRecord]]" = OrderedDict()
    for record in _newest_first(records):
        groups.setdefault(record.identity, []).append(record)

    # Phase 2: resolve each group against its newest record
    unique: Dict[str, StoreRecord] = {}
    ambiguous = 0
    for identity, group in groups.items():
        newest = group[0]
        if any(_is_ambiguous(newest, other, window_seconds) for other in group[1:]):
            ambiguous += 1
            continue
        unique[identity] = newest

    if ambiguous:
        logger.debug("Dropped %d ambiguous package name(s)", ambiguous)

    return unique

"""Parse Nix store paths into StoreRecords.

A store path looks like ``/nix/store/<hash>-<name>-<version>[-<suffix>]``.
Names and versions may both contain dashes, so the split point is found
heuristically:

  1. Strip the directory and the ``<hash>-`` prefix.
  2. Split the rest on ``-``.
  3. Two fragments: ``name-version``, provided the version has a digit.
  4. More fragments: a digit-free last fragment is the suffix (an output
     such as ``bin`` or a variant such as ``staging``); the first later
     fragment that looks like a version starts the version.

Anything without a recognisable version (patches, ``.drv`` files, images)
is rejected with ``None``.
"""

import re
from typing import Iterable, Iterator, Optional

from ..logging_config import get_logger
from .models import StoreRecord

logger = get_logger(__name__)

FRAGMENT_SEPARATOR = "-"

# A version fragment starts with a digit (or "v" and a digit) and is
# otherwise made of digits, lowercase letters, dots and underscores.
_VERSION_FRAGMENT = re.compile(r"v?[0-9][0-9a-z._]*")
_DIGIT = re.compile(r"[0-9]")


def is_version_fragment(fragment: str) -> bool:
    """Return True if a single dash-separated fragment looks like a version."""
    return _VERSION_FRAGMENT.fullmatch(fragment) is not None


def _has_digit(fragment: str) -> bool:
    return _DIGIT.search(fragment) is not None


def strip_store_prefix(path: str) -> Optional[str]:
    """Remove the store directory and hash prefix from a store path.

    >>> strip_store_prefix("/nix/store/03lp4drizbh8cl3f9mjysrrzrg3ssakv-glxinfo-8.4.0")
    'glxinfo-8.4.0'

    Returns None when there is no ``-`` or nothing follows it.
    """
    basename = path.rsplit("/", 1)[-1]
    _hash, sep, rest = basename.partition(FRAGMENT_SEPARATOR)
    if not sep or not rest:
        return None
    return rest


def parse_store_name(
    stripped: str,
    registration_time: Optional[int] = None,
    origin: Optional[str] = None,
) -> Optional[StoreRecord]:
    """Parse a prefix-free store name such as ``wine-wow-4.0-rc5-staging``.

    Returns None if the string does not contain a version.
    """
    fragments = stripped.split(FRAGMENT_SEPARATOR)

    if len(fragments) < 2:
        return None

    if len(fragments) == 2:
        name, version = fragments
        if not name or not _has_digit(version):
            return None
        return StoreRecord(
            name=name,
            version=version,
            registration_time=registration_time,
            origin=origin,
        )

    suffix = None
    if not _has_digit(fragments[-1]):
        suffix = fragments.pop() or None

    # Fragment 0 always belongs to the name
    version_start = None
    for idx in range(1, len(fragments)):
        if is_version_fragment(fragments[idx]):
            version_start = idx
            break

    if version_start is None:
        return None

    return StoreRecord(
        name=FRAGMENT_SEPARATOR.join(fragments[:version_start]),
        version=FRAGMENT_SEPARATOR.join(fragments[version_start:]),
        suffix=suffix,
        registration_time=registration_time,
        origin=origin,
    )


def parse_store_path(path: str, registration_time: Optional[int] = None) -> Optional[StoreRecord]:
    """Parse a full store path. The path is kept as the record's origin."""
    stripped = strip_store_prefix(path)
    if stripped is None:
        return None
    return parse_store_name(stripped, registration_time=registration_time, origin=path)


def parse_store_paths(paths: Iterable[str]) -> Iterator[StoreRecord]:
    """Parse store paths one per line, silently skipping the ones that don't parse."""
    skipped = 0
    for raw in paths:
        path = raw.strip()
        if not path:
            continue
        record = parse_store_path(path)
        if record is None:
            skipped += 1
            continue
        yield record

    if skipped:
        logger.debug("Skipped %d unparseable store path(s)", skipped)

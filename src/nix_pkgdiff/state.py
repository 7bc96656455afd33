"""Save and load the pre-update package snapshot.

The state file holds the pre-partition package map, so the diff can be
recomputed from it later with the current partitioning rules. Store paths
(``origin``) are not saved; they are only needed while querying.
"""

import contextlib
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import StateFileError, StateNotFoundError
from .logging_config import get_logger
from .store.models import Package, StoreRecord, SystemSnapshot

logger = get_logger(__name__)

STATE_SCHEMA_VERSION = 1


def _record_to_dict(record: StoreRecord) -> Dict[str, Any]:
    return {
        "name": record.name,
        "version": record.version,
        "suffix": record.suffix,
        "registration_time": record.registration_time,
    }


def _record_from_dict(data: Dict[str, Any]) -> StoreRecord:
    return StoreRecord(
        name=data["name"],
        version=data["version"],
        suffix=data.get("suffix"),
        registration_time=data.get("registration_time"),
    )


def snapshot_to_dict(snapshot: SystemSnapshot) -> Dict[str, Any]:
    """Serialisable form of a snapshot. Packages are sorted for stable files."""
    packages: List[Dict[str, Any]] = []
    for identity in sorted(snapshot.packages):
        pkg = snapshot.packages[identity]
        entry = _record_to_dict(pkg.primary)
        entry["dependencies"] = [
            _record_to_dict(pkg.dependencies[dep_id]) for dep_id in sorted(pkg.dependencies)
        ]
        packages.append(entry)

    return {
        "schema_version": snapshot.schema_version,
        "tool_version": snapshot.tool_version,
        "timestamp": snapshot.timestamp,
        "source": snapshot.source,
        "packages": packages,
        "shared_dependencies": [
            _record_to_dict(snapshot.shared_dependencies[dep_id])
            for dep_id in sorted(snapshot.shared_dependencies)
        ],
    }


def snapshot_from_dict(data: Dict[str, Any]) -> SystemSnapshot:
    """Rebuild a snapshot from ``snapshot_to_dict`` output.

    Raises:
        KeyError / TypeError / ValueError: on malformed data
    """
    schema_version = data.get("schema_version", STATE_SCHEMA_VERSION)
    if schema_version != STATE_SCHEMA_VERSION:
        raise ValueError(f"unsupported schema_version {schema_version}")

    packages: Dict[str, Package] = {}
    for entry in data["packages"]:
        primary = _record_from_dict(entry)
        deps = (_record_from_dict(d) for d in entry.get("dependencies", []))
        packages[primary.identity] = Package(
            primary=primary,
            dependencies={dep.identity: dep for dep in deps},
        )

    shared = (_record_from_dict(d) for d in data.get("shared_dependencies", []))

    return SystemSnapshot(
        schema_version=schema_version,
        tool_version=data.get("tool_version", ""),
        timestamp=data.get("timestamp", ""),
        source=data.get("source", ""),
        packages=packages,
        shared_dependencies={dep.identity: dep for dep in shared},
    )


def save_state(snapshot: SystemSnapshot, path: Path) -> None:
    """Write ``snapshot`` to ``path`` as JSON, creating parent directories.

    The file is written next to its destination and renamed into place so
    an interrupted save never leaves a truncated state behind.
    """
    tmp_path: Optional[Path] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot_to_dict(snapshot), f, indent=2)
        tmp_path.replace(path)
    except OSError as e:
        if tmp_path is not None:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
        raise StateFileError(path, str(e)) from e

    logger.info("Saved state with %d package(s) to %s", len(snapshot.packages), path)


def load_state(path: Path) -> SystemSnapshot:
    """Load a snapshot written by ``save_state``.

    Raises:
        StateNotFoundError: Nothing has been saved at ``path``.
        StateFileError: The file is unreadable or not a valid state file.
    """
    if not path.exists():
        raise StateNotFoundError(path)

    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise StateFileError(path, str(e)) from e

    if not isinstance(raw, dict):
        raise StateFileError(path, "expected a JSON object")

    try:
        snapshot = snapshot_from_dict(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise StateFileError(path, f"malformed state: {e}") from e

    logger.info("Loaded state with %d package(s) from %s", len(snapshot.packages), path)
    return snapshot

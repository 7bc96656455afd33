"""Read installed store paths straight from the Nix SQLite database."""

import os
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..exceptions import DependencyLookupError, StoreAccessError
from ..logging_config import get_logger
from ..store.models import StoreRecord
from ..store.parser import parse_store_path

logger = get_logger(__name__)

# ``ca`` is set on .drv files and most source archives, which are not packages.
_SELECT_SYSTEM_STORES = """
    SELECT id, path, registrationTime
    FROM ValidPaths
    WHERE ca IS NULL
    {exclusions}
    ORDER BY registrationTime DESC
"""

_SELECT_STORE_DEPS = """
    WITH RECURSIVE closure(id) AS (
        SELECT reference FROM Refs WHERE referrer = ?
        UNION
        SELECT Refs.reference FROM Refs JOIN closure ON Refs.referrer = closure.id
    )
    SELECT id, path, registrationTime
    FROM ValidPaths
    WHERE ca IS NULL
      AND id != ?
      AND id IN (SELECT id FROM closure)
    ORDER BY registrationTime DESC
"""

Row = Tuple[int, str, int]


class NixDatabase:
    """Read-only access to ``/nix/var/nix/db/db.sqlite``.

    Usage::

        with NixDatabase() as db:
            records = list(db.system_records())
            deps = list(db.dependency_records(records[0]))

    The database is opened immutably when possible, which works without
    root. Store path ids are remembered per path so dependency queries can
    be issued for the records this source produced.
    """

    name = "database"

    def __init__(
        self,
        path: str = "/nix/var/nix/db/db.sqlite",
        exclude_patterns: Optional[Sequence[str]] = None,
    ) -> None:
        self.path = Path(path)
        self.exclude_patterns: List[str] = list(exclude_patterns or [])
        self._conn: Optional[sqlite3.Connection] = None
        self._ids: Dict[str, int] = {}
        # One connection shared by the dependency lookup workers
        self._lock = threading.Lock()

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection. Raises if not connected."""
        if self._conn is None:
            raise RuntimeError("NixDatabase is not connected. Use as context manager or call connect().")
        return self._conn

    # ── lifecycle ─────────────────────────────────────────────────

    def connect(self) -> sqlite3.Connection:
        """Open the database read-only, immutably if the platform allows it."""
        if not self.path.exists():
            raise StoreAccessError(self.path, "file does not exist")

        uris = (
            f"file:{self.path}?mode=ro&immutable=1",
            f"file:{self.path}?mode=ro",
        )
        last_error: Optional[sqlite3.Error] = None
        for uri in uris:
            conn = None
            try:
                conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
                conn.execute("SELECT 1 FROM ValidPaths LIMIT 1")
            except sqlite3.Error as e:
                logger.debug("Opening %s failed: %s", uri, e)
                if conn is not None:
                    conn.close()
                last_error = e
                continue
            self._conn = conn
            logger.debug("Nix database connected at %s", uri)
            return conn

        reason = str(last_error)
        if hasattr(os, "geteuid") and os.geteuid() != 0:
            reason += "; try running as root"
        raise StoreAccessError(self.path, reason)

    def close(self) -> None:
        """Close the connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "NixDatabase":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── queries ───────────────────────────────────────────────────

    def _query(self, sql: str, params: Sequence) -> List[Row]:
        with self._lock:
            return self.conn.execute(sql, tuple(params)).fetchall()

    def _to_records(self, rows: List[Row], remember_ids: bool = False) -> Iterator[StoreRecord]:
        skipped = 0
        for store_id, path, registration_time in rows:
            record = parse_store_path(path, registration_time=registration_time)
            if record is None:
                skipped += 1
                continue
            if remember_ids:
                self._ids[path] = store_id
            yield record
        if skipped:
            logger.debug("Skipped %d unparseable store path(s)", skipped)

    def system_records(self) -> Iterator[StoreRecord]:
        """Every valid store path, newest registration first."""
        exclusions = "".join("AND path NOT LIKE ?\n" for _ in self.exclude_patterns)
        sql = _SELECT_SYSTEM_STORES.format(exclusions=exclusions)
        try:
            rows = self._query(sql, self.exclude_patterns)
        except sqlite3.Error as e:
            raise StoreAccessError(self.path, str(e)) from e
        return self._to_records(rows, remember_ids=True)

    def dependency_records(self, record: StoreRecord) -> Iterator[StoreRecord]:
        """Every store path in the runtime closure of ``record``, excluding itself."""
        store_id = self._ids.get(record.origin or "")
        if store_id is None:
            raise DependencyLookupError(record.identity, "store path is not in the Nix database")

        try:
            rows = self._query(_SELECT_STORE_DEPS, (store_id, store_id))
        except sqlite3.Error as e:
            raise DependencyLookupError(record.identity, str(e)) from e
        return self._to_records(rows)

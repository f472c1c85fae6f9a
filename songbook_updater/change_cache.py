"""ChangeCache: persistent content hashes used to skip unchanged conversions."""

from __future__ import annotations

import hashlib
import logging
import sqlite3
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

_HASH_CHUNK = 1 << 16


def hash_file(path: Path) -> str:
    """Return the hex SHA-256 digest of the file content."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_HASH_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ChangeCache:
    """
    Maps absolute source paths to the hash of their content at the last
    conversion, stored in a single SQLite file.

    ``is_modified()`` writes the fresh hash as soon as it differs from the
    stored one, before the caller has regenerated anything. A crash between
    that write and the end of the conversion leaves the artifact stale until
    the next forced or clean run.

    One instance may be shared by several worker threads: every
    read-then-write on a path happens under a single lock.
    """

    def __init__(self, db_file: Path) -> None:
        self.db_file = Path(db_file)
        self._lock = threading.Lock()
        self._conn = self._open()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_file, timeout=30, check_same_thread=False)
        try:
            conn.execute("CREATE TABLE IF NOT EXISTS hashes (filename TEXT PRIMARY KEY, hash TEXT NOT NULL)")
            conn.execute("SELECT COUNT(*) FROM hashes").fetchone()
            conn.commit()
        except sqlite3.DatabaseError:
            conn.close()
            raise
        return conn

    def _open(self) -> sqlite3.Connection:
        self.db_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            return self._connect()
        except sqlite3.DatabaseError as exc:
            logger.warning("Change cache %s is unreadable (%s); starting with an empty cache.", self.db_file, exc)
            self.db_file.unlink(missing_ok=True)
            return self._connect()

    def _select(self, filename: str) -> str | None:
        row = self._conn.execute("SELECT hash FROM hashes WHERE filename = ?", (filename,)).fetchone()
        return row[0] if row else None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def stored_hash(self, path: Path) -> str | None:
        with self._lock:
            return self._select(str(Path(path).resolve()))

    def is_modified(self, path: Path) -> bool:
        """
        Report whether the file changed since it was last seen.

        A file seen for the first time counts as changed. A missing file
        counts as unchanged because nothing can be generated from it.
        """
        source = Path(path).resolve()
        if not source.is_file():
            return False
        filename = str(source)
        fresh = hash_file(source)
        with self._lock:
            stored = self._select(filename)
            if stored == fresh:
                return False
            self._conn.execute(
                "INSERT INTO hashes (filename, hash) VALUES (?, ?) "
                "ON CONFLICT(filename) DO UPDATE SET hash = excluded.hash",
                (filename, fresh),
            )
            self._conn.commit()
        logger.debug("Change detected in %s", filename)
        return True

    def flush(self) -> None:
        """Delete all records."""
        with self._lock:
            self._conn.execute("DELETE FROM hashes")
            self._conn.commit()

    def count(self) -> int:
        with self._lock:
            return int(self._conn.execute("SELECT COUNT(*) FROM hashes").fetchone()[0])

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def purge(self) -> None:
        """Close the store and delete its file."""
        self.close()
        self.db_file.unlink(missing_ok=True)

    def __enter__(self) -> "ChangeCache":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

"""Content-addressed cache of per-file extraction results.

The cache holds nothing but what :func:`deadwood.index.symbols.extract_file`
returns, keyed by path and guarded by a fingerprint of the file's bytes.
Graphs, reachability and scores are never persisted.

Every failure mode degrades to a cache miss: a database that cannot be
opened is deleted and recreated (or, failing that, the run proceeds
uncached); an entry that does not decode is re-extracted.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sqlite3
from pathlib import Path

from deadwood.db.connection import batched_in, ensure_schema, get_connection
from deadwood.index.symbols import EXTRACTOR_VERSION

log = logging.getLogger(__name__)

_REQUIRED_KEYS = frozenset({"path", "language", "symbols", "references", "diagnostics"})
_RECORD_KEYS = {
    "symbols": frozenset({"name", "kind", "line_start", "line_end", "is_exported", "is_default_export"}),
    "references": frozenset(
        {"source_name", "target_name", "kind", "line", "import_path", "imported_name", "member"}
    ),
    "diagnostics": frozenset({"path", "severity", "code", "message"}),
}


def fingerprint(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def _decode_payload(path: str, payload: str) -> dict | None:
    try:
        data = json.loads(payload)
    except ValueError:
        return None
    if not isinstance(data, dict) or not _REQUIRED_KEYS <= data.keys() or data["path"] != path:
        return None
    for key, required in _RECORD_KEYS.items():
        records = data[key]
        if not isinstance(records, list):
            return None
        if not all(isinstance(r, dict) and required <= r.keys() for r in records):
            return None
    return data


class GraphCache:
    """Handle on the extraction cache with an explicit open/close lifecycle.

    Writes are staged in memory and only reach the database in
    :meth:`commit`, inside a single transaction, so an abandoned run leaves
    the previous contents untouched.
    """

    def __init__(self, db_path: Path, extractor_version: int = EXTRACTOR_VERSION):
        self.db_path = Path(db_path)
        self.extractor_version = extractor_version
        self.conn: sqlite3.Connection | None = None
        self._staged: dict[str, tuple[str, str]] = {}

    @property
    def is_open(self) -> bool:
        return self.conn is not None

    def open(self) -> "GraphCache":
        try:
            self.conn = self._connect()
        except sqlite3.DatabaseError as exc:
            log.warning("Cache database %s is unreadable (%s); recreating it", self.db_path, exc)
            self._remove_files()
            try:
                self.conn = self._connect()
            except (sqlite3.DatabaseError, OSError) as exc2:
                log.warning("Cannot recreate cache database %s (%s); running uncached", self.db_path, exc2)
                self.conn = None
        except OSError as exc:
            log.warning("Cannot open cache directory for %s (%s); running uncached", self.db_path, exc)
            self.conn = None
        return self

    def _connect(self) -> sqlite3.Connection:
        conn = get_connection(self.db_path)
        try:
            ensure_schema(conn, self.extractor_version)
        except sqlite3.DatabaseError:
            conn.close()
            raise
        return conn

    def close(self) -> None:
        self._staged.clear()
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "GraphCache":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, fingerprints: dict[str, str]) -> dict[str, dict]:
        """Return cached extractions for every path whose fingerprint matches.

        Paths missing from the result are misses.
        """
        if self.conn is None or not fingerprints:
            return {}
        try:
            rows = batched_in(
                self.conn,
                "SELECT path, fingerprint, payload FROM extractions WHERE path IN ({ph})",
                sorted(fingerprints),
            )
        except sqlite3.DatabaseError as exc:
            log.warning("Cache read failed (%s); re-extracting everything", exc)
            return {}

        hits = {}
        for row in rows:
            path = row["path"]
            if row["fingerprint"] != fingerprints.get(path):
                continue
            data = _decode_payload(path, row["payload"])
            if data is None:
                log.debug("Discarding undecodable cache entry for %s", path)
                continue
            hits[path] = data
        return hits

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def stage(self, path: str, file_fingerprint: str, extraction: dict) -> None:
        """Queue an extraction for the next :meth:`commit`."""
        self._staged[path] = (file_fingerprint, json.dumps(extraction, sort_keys=True))

    def discard(self) -> None:
        """Drop staged writes (the run was cancelled)."""
        self._staged.clear()

    def commit(self, live_paths: set[str] | None = None) -> int:
        """Write staged entries and prune paths not in *live_paths*.

        All-or-nothing: on any database error the transaction is rolled back
        and the cache keeps its previous contents.  Returns the number of
        entries written.
        """
        if self.conn is None:
            self._staged.clear()
            return 0
        staged = sorted(self._staged.items())
        self._staged.clear()
        try:
            with self.conn:
                self.conn.executemany(
                    "INSERT OR REPLACE INTO extractions (path, fingerprint, payload, updated_at) "
                    "VALUES (?, ?, ?, datetime('now'))",
                    [(path, fp, payload) for path, (fp, payload) in staged],
                )
                if live_paths is not None:
                    stale = [
                        (row["path"],)
                        for row in self.conn.execute("SELECT path FROM extractions")
                        if row["path"] not in live_paths
                    ]
                    self.conn.executemany("DELETE FROM extractions WHERE path = ?", stale)
        except sqlite3.DatabaseError as exc:
            log.warning("Cache write failed (%s); previous cache contents kept", exc)
            return 0
        return len(staged)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def entry_count(self) -> int:
        if self.conn is None:
            return 0
        return self.conn.execute("SELECT COUNT(*) FROM extractions").fetchone()[0]

    def _remove_files(self) -> None:
        for suffix in ("", "-wal", "-shm", "-journal"):
            p = self.db_path.with_name(self.db_path.name + suffix)
            try:
                p.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                log.warning("Cannot remove %s: %s", p, exc)

    def clear(self) -> bool:
        """Delete the database files. Returns True if a database existed."""
        self.close()
        existed = self.db_path.exists()
        self._remove_files()
        return existed

"""SQLite connection management with adaptive journal mode and performance pragmas."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from deadwood.config import DeadCodeConfig, get_cache_dir
from deadwood.db.schema import DROP_SQL, SCHEMA_SQL, SCHEMA_VERSION

log = logging.getLogger(__name__)

DEFAULT_DB_NAME = "cache.db"


def get_db_path(project_root: Path, config: DeadCodeConfig | None = None) -> Path:
    """Get the path to the cache database (the directory is not created)."""
    return get_cache_dir(Path(project_root), config or DeadCodeConfig()) / DEFAULT_DB_NAME


def _is_cloud_synced(path: Path) -> bool:
    """Detect if *path* lives under a cloud-sync folder (OneDrive, Dropbox, etc.).

    WAL mode creates auxiliary ``-wal`` and ``-shm`` files that cloud sync
    services aggressively lock, causing SQLite writes to stall.  When we
    detect a cloud-synced path we fall back to DELETE journal mode.
    """
    markers = ("onedrive", "dropbox", "google drive", "icloud")
    resolved = str(path.resolve()).lower()
    return any(m in resolved for m in markers)


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Get a SQLite connection with optimized settings."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), timeout=30)
    conn.row_factory = sqlite3.Row
    try:
        if _is_cloud_synced(db_path):
            conn.execute("PRAGMA journal_mode=DELETE")
            conn.execute("PRAGMA locking_mode=EXCLUSIVE")
        else:
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA temp_store=MEMORY")
    except sqlite3.DatabaseError:
        conn.close()
        raise
    return conn


def _read_meta(conn: sqlite3.Connection) -> dict[str, str]:
    row = conn.execute("SELECT 1 FROM sqlite_master WHERE type='table' AND name='meta'").fetchone()
    if row is None:
        return {}
    return {r["key"]: r["value"] for r in conn.execute("SELECT key, value FROM meta")}


def ensure_schema(conn: sqlite3.Connection, extractor_version: int) -> bool:
    """Create tables if needed; drop and rebuild them on a version mismatch.

    Returns True when existing cache contents were discarded.
    """
    meta = _read_meta(conn)
    expected = {"schema_version": str(SCHEMA_VERSION), "extractor_version": str(extractor_version)}
    rebuilt = False
    if meta and any(meta.get(k) != v for k, v in expected.items()):
        log.info(
            "Cache version mismatch (found %s, expected %s); rebuilding",
            {k: meta.get(k) for k in expected},
            expected,
        )
        conn.executescript(DROP_SQL)
        rebuilt = True
    conn.executescript(SCHEMA_SQL)
    conn.executemany(
        "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
        sorted(expected.items()),
    )
    conn.commit()
    return rebuilt


# ---------------------------------------------------------------------------
# Batched IN-clause helper: stays under SQLITE_MAX_VARIABLE_NUMBER (default 999)
# ---------------------------------------------------------------------------

_BATCH_SIZE = 500  # leave room for extra params (SQLite limit 999)


def batched_in(conn, sql, ids, *, pre=(), post=(), batch_size=_BATCH_SIZE):
    """Execute *sql* with a ``{ph}`` placeholder in batches.

    ::

        batched_in(conn, "SELECT * FROM extractions WHERE path IN ({ph})", paths)

    Returns a flat list of all rows across batches.
    """
    if not ids:
        return []
    ids = list(ids)
    n_ph = sql.count("{ph}")
    chunk = max(1, batch_size // max(n_ph, 1))

    rows = []
    for i in range(0, len(ids), chunk):
        batch = ids[i:i + chunk]
        ph = ",".join("?" for _ in batch)
        q = sql.replace("{ph}", ph)
        params = list(pre) + batch * n_ph + list(post)
        rows.extend(conn.execute(q, params).fetchall())
    return rows


def db_exists(project_root: Path, config: DeadCodeConfig | None = None) -> bool:
    """Check if a cache database exists."""
    path = get_db_path(project_root, config)
    return path.exists() and path.stat().st_size > 0


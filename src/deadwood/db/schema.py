"""SQLite schema for the deadwood extraction cache."""

# Bump when the table layout changes; older databases are rebuilt.
SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS extractions (
    path TEXT PRIMARY KEY,
    fingerprint TEXT NOT NULL,
    payload TEXT NOT NULL,
    updated_at TEXT DEFAULT (datetime('now'))
);
"""

DROP_SQL = """
DROP TABLE IF EXISTS extractions;
DROP TABLE IF EXISTS meta;
"""

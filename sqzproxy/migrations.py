"""Schema migrations for the SQLite store."""

from __future__ import annotations

import logging
import sqlite3

log = logging.getLogger(__name__)

_SCHEMA_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_INITIAL = """
CREATE TABLE IF NOT EXISTS rules (
    id TEXT PRIMARY KEY,
    pattern TEXT NOT NULL,
    replacement TEXT NOT NULL,
    layer TEXT NOT NULL,
    domain TEXT,
    confidence REAL NOT NULL DEFAULT 0.0,
    samples INTEGER NOT NULL DEFAULT 0,
    enabled INTEGER NOT NULL DEFAULT 1,
    priority INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_rules_layer ON rules(layer);
CREATE INDEX IF NOT EXISTS idx_rules_domain ON rules(domain);

CREATE TABLE IF NOT EXISTS compression_stats (
    id TEXT PRIMARY KEY,
    request_id TEXT NOT NULL,
    provider TEXT NOT NULL,
    model TEXT NOT NULL,
    domain_detected TEXT,
    original_tokens INTEGER NOT NULL,
    compressed_tokens INTEGER NOT NULL,
    compression_ratio REAL NOT NULL,
    rules_applied TEXT NOT NULL,
    elapsed_us INTEGER NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_compression_stats_created
    ON compression_stats(created_at);

CREATE TABLE IF NOT EXISTS rule_stats (
    rule_id TEXT PRIMARY KEY,
    times_applied INTEGER NOT NULL DEFAULT 0,
    total_tokens_saved INTEGER NOT NULL DEFAULT 0,
    avg_compression REAL NOT NULL DEFAULT 0.0,
    last_applied_at TEXT
);

CREATE TABLE IF NOT EXISTS experiments (
    id TEXT PRIMARY KEY,
    rule_id TEXT NOT NULL,
    original_prompt TEXT NOT NULL,
    compressed_prompt TEXT NOT NULL,
    original_response TEXT,
    compressed_response TEXT,
    similarity_score REAL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    completed_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_experiments_created ON experiments(created_at);
"""

_MIGRATIONS: tuple[tuple[int, str, str], ...] = ((1, "001_initial", _INITIAL),)


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version, or 0 if none."""
    exists = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    ).fetchone()
    if exists is None:
        return 0
    (version,) = conn.execute(
        "SELECT COALESCE(MAX(version), 0) FROM schema_version"
    ).fetchone()
    return int(version)


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply every pending migration, each inside its own transaction.

    Raises ``sqlite3.Error`` if a migration fails; the failed migration
    leaves the database unchanged.
    """
    conn.executescript(_SCHEMA_VERSION_TABLE)
    version = current_version(conn)
    for number, name, script in _MIGRATIONS:
        if version >= number:
            continue
        log.info("applying migration %s", name)
        try:
            conn.executescript(
                "BEGIN;\n"
                + script
                + f"\nINSERT INTO schema_version (version) VALUES ({number});\nCOMMIT;"
            )
        except sqlite3.Error:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        version = number
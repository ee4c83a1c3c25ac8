import sqlite3

import pytest

from sqzproxy.migrations import current_version, run_migrations


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    yield connection
    connection.close()


def _tables(conn):
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {name for (name,) in rows}


def test_fresh_database_has_version_zero(conn):
    assert current_version(conn) == 0


def test_run_migrations_sets_version(conn):
    run_migrations(conn)
    assert current_version(conn) == 1


def test_run_migrations_creates_tables(conn):
    run_migrations(conn)
    assert {
        "schema_version",
        "rules",
        "compression_stats",
        "rule_stats",
        "experiments",
    } <= _tables(conn)


def test_run_migrations_is_idempotent(conn):
    run_migrations(conn)
    run_migrations(conn)
    rows = conn.execute("SELECT version FROM schema_version").fetchall()
    assert rows == [(1,)]
    assert current_version(conn) == 1


def test_schema_version_records_applied_at(conn):
    run_migrations(conn)
    (applied_at,) = conn.execute("SELECT applied_at FROM schema_version").fetchone()
    assert isinstance(applied_at, str) and len(applied_at) > 0


def test_rules_table_accepts_full_row(conn):
    run_migrations(conn)
    conn.execute(
        "INSERT INTO rules (id, pattern, replacement, layer, domain, confidence, "
        "samples, enabled, priority, created_at, updated_at) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        ("r1", "p", "q", "learned", None, 0.5, 2, True, 3, "t", "t"),
    )
    row = conn.execute("SELECT layer, enabled, priority FROM rules WHERE id = 'r1'").fetchone()
    assert row == ("learned", 1, 3)


def test_rule_stats_rule_id_is_unique(conn):
    run_migrations(conn)
    conn.execute("INSERT INTO rule_stats (rule_id) VALUES ('r1')")
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute("INSERT INTO rule_stats (rule_id) VALUES ('r1')")


def test_migrations_survive_reopen(tmp_path):
    path = tmp_path / "store.db"
    first = sqlite3.connect(path)
    run_migrations(first)
    first.close()
    second = sqlite3.connect(path)
    try:
        assert current_version(second) == 1
        run_migrations(second)
        assert second.execute("SELECT COUNT(*) FROM schema_version").fetchone() == (1,)
    finally:
        second.close()
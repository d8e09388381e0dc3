"""SQLite catalog database: schema and connection setup."""

from __future__ import annotations

import sqlite3
from pathlib import Path

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS components (
    id TEXT PRIMARY KEY,
    category TEXT NOT NULL CHECK (
        category IN ('cpu', 'gpu', 'ram', 'storage', 'motherboard', 'psu', 'cooling', 'case')
    ),
    name TEXT NOT NULL DEFAULT '',
    brand TEXT NOT NULL DEFAULT '',
    price REAL,
    specifications TEXT NOT NULL DEFAULT '{}',
    is_active INTEGER NOT NULL DEFAULT 1,
    updated_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS builds (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    compatibility_score INTEGER,
    is_compatible INTEGER,
    checked_at TIMESTAMP,
    created_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS build_components (
    build_id INTEGER NOT NULL REFERENCES builds(id) ON DELETE CASCADE,
    component_id TEXT NOT NULL REFERENCES components(id),
    position INTEGER NOT NULL,
    PRIMARY KEY (build_id, component_id)
);

CREATE INDEX IF NOT EXISTS idx_components_category ON components(category);
CREATE INDEX IF NOT EXISTS idx_build_components_build ON build_components(build_id);
"""


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Create or open a SQLite database with the buildcheck schema."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    conn.executescript(SCHEMA_SQL)
    conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
    conn.commit()

    return conn

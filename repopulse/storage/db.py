"""SQLite database setup and schema management."""

from __future__ import annotations

import sqlite3
from pathlib import Path

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS analyses (
    id TEXT PRIMARY KEY,
    repo TEXT NOT NULL,
    status TEXT NOT NULL,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    duration_ms INTEGER DEFAULT 0,
    files_analyzed INTEGER DEFAULT 0,
    lines_analyzed INTEGER DEFAULT 0,
    tasks_found INTEGER DEFAULT 0,
    error_message TEXT,
    health_metrics TEXT,
    last_commit TEXT
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    analysis_id TEXT NOT NULL REFERENCES analyses(id) ON DELETE CASCADE,
    repo TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    category TEXT NOT NULL,
    priority_score REAL NOT NULL DEFAULT 0,
    priority_factors TEXT,
    file_path TEXT,
    line_number INTEGER,
    code_snippet TEXT,
    suggested_next_steps TEXT,
    status TEXT NOT NULL DEFAULT 'open',
    tags TEXT,
    created_at TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_analyses_repo ON analyses(repo);
CREATE INDEX IF NOT EXISTS idx_analyses_status ON analyses(status);
CREATE INDEX IF NOT EXISTS idx_tasks_analysis ON tasks(analysis_id);
CREATE INDEX IF NOT EXISTS idx_tasks_repo_status ON tasks(repo, status);
CREATE INDEX IF NOT EXISTS idx_tasks_category ON tasks(category);
CREATE INDEX IF NOT EXISTS idx_tasks_priority ON tasks(priority_score);
"""


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Create or open a SQLite database with the repopulse schema."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    conn.executescript(SCHEMA_SQL)
    conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
    conn.commit()

    return conn

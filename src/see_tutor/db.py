"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

from see_tutor.config import DEFAULT_DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);

CREATE TABLE IF NOT EXISTS evaluation_attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    lesson_day INTEGER NOT NULL,
    topic TEXT NOT NULL,
    part TEXT,
    score INTEGER NOT NULL,
    is_twist INTEGER DEFAULT 0,
    evaluated_at TEXT
);

CREATE TABLE IF NOT EXISTS mock_exam_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    score INTEGER NOT NULL,
    total INTEGER NOT NULL,
    percentage REAL NOT NULL,
    taken_at TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection whose rows support access by column name."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()

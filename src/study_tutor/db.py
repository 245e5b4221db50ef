"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = str(Path.home() / ".study_tutor" / "tutor.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS flashcards (
    item_id TEXT PRIMARY KEY,
    subject TEXT NOT NULL,
    topic TEXT NOT NULL,
    front TEXT NOT NULL,
    back TEXT NOT NULL,
    source TEXT DEFAULT 'seeded',
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS questions (
    item_id TEXT PRIMARY KEY,
    subject TEXT NOT NULL,
    topic TEXT NOT NULL,
    kind TEXT NOT NULL,
    stem TEXT NOT NULL,
    options TEXT NOT NULL DEFAULT '[]',
    answers TEXT NOT NULL,
    points INTEGER NOT NULL DEFAULT 1,
    explanation TEXT,
    source TEXT DEFAULT 'seeded',
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS review_records (
    item_id TEXT PRIMARY KEY,
    times_correct INTEGER NOT NULL DEFAULT 0,
    times_seen INTEGER NOT NULL DEFAULT 0,
    interval_days INTEGER NOT NULL DEFAULT 1,
    last_reviewed_at TEXT
);

CREATE TABLE IF NOT EXISTS mastered_items (
    item_id TEXT PRIMARY KEY,
    mastered_at TEXT
);

CREATE TABLE IF NOT EXISTS topic_stats (
    topic_key TEXT PRIMARY KEY,
    correct INTEGER NOT NULL DEFAULT 0,
    attempts INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS exam_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    taken_at TEXT NOT NULL,
    questions_planned INTEGER NOT NULL,
    questions_presented INTEGER NOT NULL,
    questions_answered INTEGER NOT NULL,
    total_earned INTEGER NOT NULL,
    total_possible INTEGER NOT NULL,
    percentage REAL NOT NULL,
    grade TEXT NOT NULL,
    passed INTEGER NOT NULL,
    timed_out INTEGER NOT NULL,
    duration_seconds INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()

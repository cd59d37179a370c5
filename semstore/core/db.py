"""
SQLite connection handling for the persistent backing store.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator


def ensure_db_directory(db_path: str) -> None:
    """Ensure the database directory exists."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)


@contextmanager
def get_db(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    conn = sqlite3.connect(db_path)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: str) -> None:
    """Initialize the database with required tables."""
    ensure_db_directory(db_path)
    with get_db(db_path) as conn:
        cursor = conn.cursor()

        # One row per hash field, keyed like the vector service's hashes
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS fields (
                key TEXT NOT NULL,
                field TEXT NOT NULL,
                value BLOB,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (key, field)
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_fields_key ON fields(key)')

        conn.commit()


def health_check(db_path: str) -> bool:
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [table[0] for table in cursor.fetchall()]
            return 'fields' in table_names
    except sqlite3.Error:
        return False

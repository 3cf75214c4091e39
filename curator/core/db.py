"""
SQLite foundation for the taxonomy store.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator
from .config import get_db_path, ensure_db_directory


@contextmanager
def get_db(db_path: str = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection.

    Connections run in autocommit mode; callers open explicit transactions
    with BEGIN IMMEDIATE when they need the write lock.
    """
    conn = sqlite3.connect(db_path or get_db_path(), isolation_level=None, timeout=10)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: str = None):
    """Initialize the database with required tables."""
    path = db_path or get_db_path()
    ensure_db_directory(path)
    with get_db(path) as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS options (
                category TEXT NOT NULL,
                id TEXT NOT NULL,
                label TEXT NOT NULL,
                parent_id TEXT,
                extra TEXT NOT NULL DEFAULT '{}',
                position INTEGER NOT NULL,
                PRIMARY KEY (category, id)
            )
        ''')

        # Single-row aggregate state: revision counter plus opaque document fields
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS meta (
                name TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_options_parent ON options(category, parent_id)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_options_position ON options(category, position)')
        cursor.execute("INSERT OR IGNORE INTO meta (name, value) VALUES ('revision', '0')")
        cursor.execute("INSERT OR IGNORE INTO meta (name, value) VALUES ('document_extra', '{}')")


def health_check(db_path: str = None):
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [table[0] for table in cursor.fetchall()]
            required_tables = ['options', 'meta']
            return all(table in table_names for table in required_tables)
    except sqlite3.Error:
        return False

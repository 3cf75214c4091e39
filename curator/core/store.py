"""
Variable store - SQLite persistence for taxonomy options.

Every mutation runs in a single BEGIN IMMEDIATE transaction that re-reads the
aggregate revision, applies its changes and advances the revision by one.
A caller holding a stale revision gets Conflict and nothing is written.
"""

import json
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .config import get_db_path, seed_defaults_enabled
from .db import get_db, init_db
from .errors import Conflict, NotFound
from .schema import CategorySet, Option, require_category
from util.logging import logger


class VariableStore:
    """Owns one taxonomy database. Inject it; do not share it through globals."""

    def __init__(self, db_path: str = None, seed: Optional[bool] = None):
        self.db_path = db_path or get_db_path()
        init_db(self.db_path)
        # Held by bulk imports for validate+commit; writes wait on it
        self._lock = threading.RLock()

        if seed is None:
            seed = seed_defaults_enabled()
        if seed and self.revision() == 0:
            from .defaults import default_category_set
            try:
                self.replace(default_category_set(), expected_revision=0)
                logger.info(f"Seeded default variables into {self.db_path}")
            except Conflict:
                logger.debug("Default variables already seeded by another process")

    # Reads

    def revision(self) -> int:
        with get_db(self.db_path) as conn:
            return self._read_revision(conn)

    def list(self, category: str) -> List[Option]:
        require_category(category)
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT category, id, label, parent_id, extra FROM options WHERE category = ? ORDER BY position",
                (category,)
            ).fetchall()
        return [_row_to_option(row) for row in rows]

    def get(self, category: str, option_id: str) -> Option:
        require_category(category)
        with get_db(self.db_path) as conn:
            row = conn.execute(
                "SELECT category, id, label, parent_id, extra FROM options WHERE category = ? AND id = ?",
                (category, option_id)
            ).fetchone()
        if row is None:
            raise NotFound(category, option_id)
        return _row_to_option(row)

    def list_children(self, parent_id: str, category: str = "subgenres") -> List[Option]:
        require_category(category)
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT category, id, label, parent_id, extra FROM options "
                "WHERE category = ? AND parent_id = ? ORDER BY position",
                (category, parent_id)
            ).fetchall()
        return [_row_to_option(row) for row in rows]

    def snapshot(self) -> Tuple[CategorySet, int]:
        """The whole category set and the revision it was read at."""
        with get_db(self.db_path) as conn:
            conn.execute("BEGIN")
            try:
                revision = self._read_revision(conn)
                rows = conn.execute(
                    "SELECT category, id, label, parent_id, extra FROM options ORDER BY category, position"
                ).fetchall()
                extra = conn.execute("SELECT value FROM meta WHERE name = 'document_extra'").fetchone()
            finally:
                conn.execute("COMMIT")
        return CategorySet((_row_to_option(row) for row in rows), extra=json.loads(extra[0])), revision

    # Writes

    def put(self, option: Option, expected_revision: Optional[int] = None) -> int:
        """Insert or overwrite by id. Returns the new revision."""
        return self.apply(puts=[option], expected_revision=expected_revision)

    def delete(self, category: str, option_id: str, expected_revision: Optional[int] = None) -> int:
        return self.apply(deletes=[(category, option_id)], expected_revision=expected_revision)

    def apply(self, puts: Iterable[Option] = (), deletes: Iterable[Tuple[str, str]] = (),
              expected_revision: Optional[int] = None) -> int:
        """Commit deletes then puts as one revision."""
        with self._transaction(expected_revision) as txn:
            for category, option_id in deletes:
                require_category(category)
                cursor = txn.conn.execute(
                    "DELETE FROM options WHERE category = ? AND id = ?", (category, option_id)
                )
                if cursor.rowcount == 0:
                    raise NotFound(category, option_id)
            for option in puts:
                self._upsert(txn.conn, option)
        return txn.revision

    def replace(self, category_set: CategorySet, expected_revision: Optional[int] = None) -> int:
        """Swap the entire taxonomy, document extras included."""
        with self._transaction(expected_revision) as txn:
            txn.conn.execute("DELETE FROM options")
            for option in category_set:
                self._upsert(txn.conn, option)
            txn.conn.execute(
                "UPDATE meta SET value = ? WHERE name = 'document_extra'",
                (json.dumps(category_set.extra, sort_keys=True),)
            )
        return txn.revision

    @contextmanager
    def exclusive(self):
        """Block every other writer in this process (bulk import)."""
        with self._lock:
            yield self

    @contextmanager
    def _transaction(self, expected_revision: Optional[int]):
        with self._lock, get_db(self.db_path) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                actual = self._read_revision(conn)
                if expected_revision is not None and expected_revision != actual:
                    raise Conflict(expected_revision, actual)
                txn = _Transaction(conn=conn)
                yield txn
                conn.execute(
                    "UPDATE meta SET value = ? WHERE name = 'revision'", (str(actual + 1),)
                )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
            txn.revision = actual + 1

    @staticmethod
    def _read_revision(conn: sqlite3.Connection) -> int:
        row = conn.execute("SELECT value FROM meta WHERE name = 'revision'").fetchone()
        return int(row[0])

    @staticmethod
    def _upsert(conn: sqlite3.Connection, option: Option):
        require_category(option.category)
        # Overwrites keep their position; new ids go to the end of the category
        conn.execute(
            '''
            INSERT INTO options (category, id, label, parent_id, extra, position)
            VALUES (?, ?, ?, ?, ?, (SELECT COALESCE(MAX(position), -1) + 1 FROM options WHERE category = ?))
            ON CONFLICT(category, id) DO UPDATE SET
                label = excluded.label,
                parent_id = excluded.parent_id,
                extra = excluded.extra
            ''',
            (option.category, option.id, option.label, option.parent_id,
             json.dumps(option.extra, sort_keys=True), option.category)
        )


@dataclass
class _Transaction:
    conn: sqlite3.Connection
    revision: Optional[int] = None


def _row_to_option(row) -> Option:
    category, option_id, label, parent_id, extra = row
    return Option(id=option_id, category=category, label=label, parent_id=parent_id, extra=json.loads(extra))

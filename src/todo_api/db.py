from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Generator, List, Optional

from .clock import DateTimeService
from .errors import StorageError, TodoNotFoundError
from .models import TodoEntity
from .repositories import SORTABLE_FIELDS, PageSpec, Repository
from .schemas import TodoIn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    creation_time: str = "creation_time"
    modification_time: str = "modification_time"


_COLS = _Cols()

_SELECT_BY_ID = f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?"


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _casefold(value: Optional[str]) -> Optional[str]:
    return None if value is None else value.casefold()


class SQLiteRepository(Repository):
    """
    SQLite repository implementing the Repository interface.

    Every call opens its own connection. Writes run inside a single
    BEGIN IMMEDIATE transaction, so the existence check of update/delete and
    the mutating statement see the same state.
    """

    def __init__(self, db_path: str, clock: Optional[DateTimeService] = None) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._clock = clock or DateTimeService()
        self._init_db()

    @contextmanager
    def _conn(self, write: bool = False) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path, isolation_level=None)
        except sqlite3.Error as e:
            logger.error("Could not open database %s: %s", self._db_path, e)
            raise StorageError("Could not open database", "connect") from e
        conn.row_factory = sqlite3.Row
        # LOWER() only folds ASCII; search needs Unicode-aware case folding
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        try:
            if write:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            if write:
                conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            logger.error("SQLite error: %s", e)
            raise StorageError("Database operation failed", "execute") from e
        except Exception:
            if conn.in_transaction:
                conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn(write=True) as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NULL,
                    {_COLS.creation_time} TEXT NOT NULL,
                    {_COLS.modification_time} TEXT NOT NULL
                )
                """
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        return {
            "id": int(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description],
            "creation_time": datetime.fromisoformat(row[_COLS.creation_time]),
            "modification_time": datetime.fromisoformat(row[_COLS.modification_time]),
        }

    def _fetch_existing(self, conn: sqlite3.Connection, todo_id: int) -> TodoEntity:
        row = conn.execute(_SELECT_BY_ID, (todo_id,)).fetchone()
        logger.debug("Got result: %s", dict(row) if row else None)
        if row is None:
            raise TodoNotFoundError(todo_id)
        return self._row_to_entity(row)

    def add(self, data: TodoIn) -> TodoEntity:
        logger.info("Adding new todo entry with title: %s", data.title)
        now = self._clock.now()
        logger.debug("The current time is: %s", now)
        with self._conn(write=True) as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.title}, {_COLS.description},
                    {_COLS.creation_time}, {_COLS.modification_time})
                VALUES (?, ?, ?, ?)
                """,
                (data.title, data.description, now.isoformat(), now.isoformat()),
            )
            added = self._fetch_existing(conn, cur.lastrowid)
        logger.info("Added todo entry with id: %s", added["id"])
        return added

    def find_by_id(self, todo_id: int) -> TodoEntity:
        logger.info("Finding todo entry by id: %s", todo_id)
        with self._conn() as conn:
            return self._fetch_existing(conn, todo_id)

    def find_all(self) -> List[TodoEntity]:
        logger.info("Finding all todo entries.")
        with self._conn() as conn:
            rows = conn.execute(f"SELECT * FROM {_COLS.table}").fetchall()
        items = [self._row_to_entity(r) for r in rows]
        logger.info("Found %d todo entries", len(items))
        return items

    def find_by_search_term(self, search_term: str, page: PageSpec) -> List[TodoEntity]:
        logger.info(
            "Finding %d todo entries for page %d by using search term: %s",
            page.page_size,
            page.page_number,
            search_term,
        )
        like = f"%{_escape_like(search_term.casefold())}%"

        order_sql = ""
        if page.sort_field is not None:
            if page.sort_field not in SORTABLE_FIELDS:
                raise ValueError(f"Unsupported sort field: {page.sort_field}")
            order_sql = f"ORDER BY {page.sort_field} {'DESC' if page.descending else 'ASC'}"

        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                WHERE casefold({_COLS.description}) LIKE ? ESCAPE '\\'
                   OR casefold({_COLS.title}) LIKE ? ESCAPE '\\'
                {order_sql}
                LIMIT ? OFFSET ?
                """,
                (like, like, max(page.page_size, 0), page.offset),
            ).fetchall()
        items = [self._row_to_entity(r) for r in rows]
        logger.info("Found %d todo entries", len(items))
        return items

    def update(self, todo_id: int, data: TodoIn) -> TodoEntity:
        logger.info("Updating todo entry with id: %s", todo_id)
        now = self._clock.now()
        logger.debug("The current time is: %s", now)
        with self._conn(write=True) as conn:
            self._fetch_existing(conn, todo_id)
            cur = conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.description} = ?, {_COLS.modification_time} = ?
                WHERE {_COLS.id} = ?
                """,
                (data.title, data.description, now.isoformat(), todo_id),
            )
            logger.debug("Updated %d todo entry.", cur.rowcount)
            return self._fetch_existing(conn, todo_id)

    def delete(self, todo_id: int) -> TodoEntity:
        logger.info("Deleting todo entry by id: %s", todo_id)
        with self._conn(write=True) as conn:
            deleted = self._fetch_existing(conn, todo_id)
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,))
            logger.debug("Deleted %d todo entries", cur.rowcount)
        logger.info("Returning deleted todo entry with id: %s", todo_id)
        return deleted

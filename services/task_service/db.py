"""
SQLite persistence for tasks.

Each operation opens its own connection, so a single ``TaskStore`` can be
shared by the request handlers FastAPI runs in its thread pool.
"""
from __future__ import annotations

import sqlite3
import typing as t
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from services.shared.models import Task

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS scheduler (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date CHAR(8) NOT NULL DEFAULT '',
    title VARCHAR(255) NOT NULL,
    comment TEXT NOT NULL DEFAULT '',
    repeat VARCHAR(128) NOT NULL DEFAULT ''
)
"""
CREATE_INDEX_SQL = "CREATE INDEX IF NOT EXISTS idx_scheduler_date ON scheduler (date)"

DEFAULT_LIMIT = 50


class TaskNotFoundError(LookupError):
    """Raised when no task has the requested id."""

    def __init__(self, task_id: t.Union[int, str]) -> None:
        super().__init__(f"task with id {task_id} not found")
        self.task_id = task_id


class TaskStore:
    """Task repository backed by a SQLite file."""

    def __init__(self, db_file: str) -> None:
        self.db_file = db_file

    @contextmanager
    def _connect(self) -> t.Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_file)
        conn.row_factory = sqlite3.Row
        conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self) -> None:
        """Creates the table and its date index if they are missing."""
        install = not Path(self.db_file).exists()
        with self._connect() as conn:
            conn.execute(CREATE_TABLE_SQL)
            conn.execute(CREATE_INDEX_SQL)
        if install:
            logger.info(f"Database initialized at {self.db_file}: table and index created")
        else:
            logger.info(f"Database {self.db_file} already exists, schema checked")

    def add_task(self, date: str, title: str, comment: str = "", repeat: str = "") -> int:
        """Inserts a task and returns its id."""
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO scheduler (date, title, comment, repeat) VALUES (?, ?, ?, ?)",
                (date, title, comment, repeat),
            )
            return int(cur.lastrowid)

    def get_task(self, task_id: int) -> Task:
        """Fetches one task.

        :raises TaskNotFoundError: If no row has this id.
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, date, title, comment, repeat FROM scheduler WHERE id = ?",
                (task_id,),
            ).fetchone()
        if row is None:
            raise TaskNotFoundError(task_id)
        return _row_to_task(row)

    def list_tasks(self, limit: int = DEFAULT_LIMIT) -> list[Task]:
        """Returns up to ``limit`` tasks, earliest date first."""
        if limit <= 0:
            raise ValueError("limit must be greater than 0")
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, date, title, comment, repeat FROM scheduler ORDER BY date, id LIMIT ?",
                (limit,),
            ).fetchall()
        return [_row_to_task(row) for row in rows]

    def search_tasks(
        self,
        text: t.Optional[str] = None,
        date: t.Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[Task]:
        """Finds tasks on an exact date, or whose title or comment contains ``text``.

        Text matching is case-insensitive for any script, not only ASCII.
        """
        if limit <= 0:
            raise ValueError("limit must be greater than 0")
        if date is not None:
            where, params = "date = ?", (date,)
        elif text:
            where, params = "contains_ci(title, ?) OR contains_ci(comment, ?)", (text, text)
        else:
            return self.list_tasks(limit)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT id, date, title, comment, repeat FROM scheduler WHERE {where} "
                "ORDER BY date, id LIMIT ?",
                (*params, limit),
            ).fetchall()
        return [_row_to_task(row) for row in rows]

    def update_task(self, task_id: int, date: str, title: str, comment: str = "", repeat: str = "") -> None:
        """Overwrites every field of a task.

        :raises TaskNotFoundError: If no row has this id.
        """
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE scheduler SET date = ?, title = ?, comment = ?, repeat = ? WHERE id = ?",
                (date, title, comment, repeat, task_id),
            )
            if cur.rowcount == 0:
                raise TaskNotFoundError(task_id)

    def update_date(self, task_id: int, date: str) -> None:
        """Moves a task to a new date.

        :raises TaskNotFoundError: If no row has this id.
        """
        with self._connect() as conn:
            cur = conn.execute("UPDATE scheduler SET date = ? WHERE id = ?", (date, task_id))
            if cur.rowcount == 0:
                raise TaskNotFoundError(task_id)

    def delete_task(self, task_id: int) -> None:
        """Deletes a task.

        :raises TaskNotFoundError: If no row has this id.
        """
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM scheduler WHERE id = ?", (task_id,))
            if cur.rowcount == 0:
                raise TaskNotFoundError(task_id)


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=str(row["id"]),
        date=row["date"],
        title=row["title"],
        comment=row["comment"] or "",
        repeat=row["repeat"] or "",
    )


def _contains_ci(haystack: t.Optional[str], needle: t.Optional[str]) -> bool:
    if not haystack or not needle:
        return False
    return needle.casefold() in haystack.casefold()

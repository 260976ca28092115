from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator, List, Mapping, Optional

from .errors import ConflictError, StorageError
from .models import SessionEntity, TaskEntity, UserEntity
from .repositories import MUTABLE_TASK_FIELDS, Repository, TaskQuery
from .utils import next_timestamp

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        token TEXT NOT NULL UNIQUE,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        priority TEXT NOT NULL,
        status TEXT NOT NULL,
        due_date TEXT NULL,
        assignee_id INTEGER NULL REFERENCES users(id) ON DELETE SET NULL,
        creator_id INTEGER NOT NULL REFERENCES users(id),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at)",
)


def _dt(s: Optional[str]) -> Optional[datetime]:
    if s is None:
        return None
    return datetime.fromisoformat(s)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.

    A connection is opened per operation and committed on exit, so each
    operation is atomic on its own and no lock is held between calls.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            raise StorageError() from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "UNIQUE" in str(e) and "users.email" in str(e):
                raise ConflictError("An account with this email already exists") from e
            if "UNIQUE" in str(e) and "sessions.token" in str(e):
                raise ConflictError("Session token already in use") from e
            logger.error("Integrity error in %s: %s", self._db_path, e)
            raise StorageError() from e
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("SQLite error in %s: %s", self._db_path, e)
            raise StorageError() from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def _row_to_user(self, row: sqlite3.Row) -> UserEntity:
        return {
            "id": int(row["id"]),
            "email": str(row["email"]),
            "password_hash": str(row["password_hash"]),
            "name": str(row["name"]),
        }

    def _row_to_session(self, row: sqlite3.Row) -> SessionEntity:
        return {
            "id": int(row["id"]),
            "token": str(row["token"]),
            "user_id": int(row["user_id"]),
            "created_at": _dt(row["created_at"]),  # type: ignore[typeddict-item]
        }

    def _row_to_task(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": int(row["id"]),
            "name": str(row["name"]),
            "description": row["description"] or "",
            "priority": str(row["priority"]),
            "status": str(row["status"]),
            "due_date": _dt(row["due_date"]),
            "assignee_id": int(row["assignee_id"]) if row["assignee_id"] is not None else None,
            "creator_id": int(row["creator_id"]),
            "created_at": _dt(row["created_at"]),  # type: ignore[typeddict-item]
            "updated_at": _dt(row["updated_at"]),  # type: ignore[typeddict-item]
        }

    # Users

    def create_user(self, email: str, password_hash: str, name: str) -> UserEntity:
        with self._conn() as conn:
            cur = conn.execute(
                "INSERT INTO users (email, password_hash, name) VALUES (?, ?, ?)",
                (email, password_hash, name),
            )
            row = conn.execute("SELECT * FROM users WHERE id = ?", (cur.lastrowid,)).fetchone()
            return self._row_to_user(row)

    def get_user(self, user_id: int) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return self._row_to_user(row) if row else None

    def list_users(self) -> List[UserEntity]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY name ASC, id ASC").fetchall()
            return [self._row_to_user(r) for r in rows]

    # Sessions

    def create_session(self, token: str, user_id: int) -> SessionEntity:
        with self._conn() as conn:
            cur = conn.execute(
                "INSERT INTO sessions (token, user_id, created_at) VALUES (?, ?, ?)",
                (token, user_id, datetime.now().isoformat(timespec="microseconds")),
            )
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (cur.lastrowid,)).fetchone()
            return self._row_to_session(row)

    def get_session_by_token(self, token: str) -> Optional[SessionEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM sessions WHERE token = ?", (token,)).fetchone()
            return self._row_to_session(row) if row else None

    def delete_sessions_by_token(self, token: str) -> int:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
            return cur.rowcount

    # Tasks

    def create_task(self, fields: Mapping[str, Any], creator_id: int) -> TaskEntity:
        now = next_timestamp().isoformat(timespec="microseconds")
        with self._conn() as conn:
            cur = conn.execute(
                """
                INSERT INTO tasks (name, description, priority, status, due_date,
                    assignee_id, creator_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    fields["name"],
                    fields.get("description") or "",
                    fields["priority"],
                    fields["status"],
                    _iso(fields.get("due_date")),
                    fields.get("assignee_id"),
                    creator_id,
                    now,
                    now,
                ),
            )
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (cur.lastrowid,)).fetchone()
            return self._row_to_task(row)

    def get_task(self, task_id: int) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row) if row else None

    def list_tasks(self, query: Optional[TaskQuery] = None) -> List[TaskEntity]:
        q = query or TaskQuery()
        clauses = []
        params: list = []

        if q.status is not None:
            clauses.append("status = ?")
            params.append(q.status)
        if q.priority is not None:
            clauses.append("priority = ?")
            params.append(q.priority)
        if q.unassigned:
            clauses.append("assignee_id IS NULL")
        if q.assignee_id is not None:
            clauses.append("assignee_id = ?")
            params.append(q.assignee_id)
        if q.creator_id is not None:
            clauses.append("creator_id = ?")
            params.append(q.creator_id)
        if q.search:
            # LIKE is case-insensitive for ASCII in SQLite; wildcards in the text are literal
            clauses.append("(name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\')")
            like = f"%{_escape_like(q.search)}%"
            params.extend([like, like])

        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM tasks {where_sql} ORDER BY created_at DESC, id DESC",
                params,
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def update_task(self, task_id: int, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if not row:
                return None
            current = self._row_to_task(row)

            columns = [k for k in changes if k in MUTABLE_TASK_FIELDS]
            values: list = []
            for key in columns:
                value = changes[key]
                values.append(_iso(value) if key == "due_date" else value)
            columns.append("updated_at")
            values.append(next_timestamp(current["updated_at"]).isoformat(timespec="microseconds"))

            assignments = ", ".join(f"{c} = ?" for c in columns)
            conn.execute(f"UPDATE tasks SET {assignments} WHERE id = ?", (*values, task_id))
            row2 = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row2)

    def delete_task(self, task_id: int) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            return cur.rowcount > 0

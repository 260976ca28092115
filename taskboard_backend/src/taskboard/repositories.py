from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import ConflictError
from .models import SessionEntity, TaskEntity, UserEntity
from .settings import Settings, get_settings
from .utils import next_timestamp

logger = logging.getLogger(__name__)

# Columns a task update may touch. creator_id and created_at are immutable.
MUTABLE_TASK_FIELDS = frozenset(
    {"name", "description", "priority", "status", "due_date", "assignee_id"}
)


@dataclass(frozen=True)
class TaskQuery:
    """
    Optional filters for listing tasks. Results are always newest first.
    """
    status: Optional[str] = None
    priority: Optional[str] = None
    assignee_id: Optional[int] = None
    creator_id: Optional[int] = None
    unassigned: bool = False
    search: Optional[str] = None


def task_matches(task: TaskEntity, q: TaskQuery) -> bool:
    if q.status is not None and task["status"] != q.status:
        return False
    if q.priority is not None and task["priority"] != q.priority:
        return False
    if q.unassigned and task["assignee_id"] is not None:
        return False
    if q.assignee_id is not None and task["assignee_id"] != q.assignee_id:
        return False
    if q.creator_id is not None and task["creator_id"] != q.creator_id:
        return False
    if q.search:
        s = q.search.lower()
        if s not in task["name"].lower() and s not in (task["description"] or "").lower():
            return False
    return True


def newest_first(tasks: Iterable[TaskEntity]) -> List[TaskEntity]:
    return sorted(tasks, key=lambda t: (t["created_at"], t["id"]), reverse=True)


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Storage handle for users, sessions and tasks.

    Opened once per process and passed to every operation. Each method commits
    a single record atomically; there are no cross-record transactions and
    concurrent writes to the same task are last-write-wins.
    """

    # Users

    @abstractmethod
    def create_user(self, email: str, password_hash: str, name: str) -> UserEntity:
        """Insert a user. Raise ConflictError if the email is taken."""

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[UserEntity]:
        """Return a user by id, or None."""

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[UserEntity]:
        """Return a user by exact email, or None."""

    @abstractmethod
    def list_users(self) -> List[UserEntity]:
        """Return every user ordered by name, then id."""

    # Sessions

    @abstractmethod
    def create_session(self, token: str, user_id: int) -> SessionEntity:
        """Insert a session row for ``user_id``."""

    @abstractmethod
    def get_session_by_token(self, token: str) -> Optional[SessionEntity]:
        """Return the session holding ``token``, or None."""

    @abstractmethod
    def delete_sessions_by_token(self, token: str) -> int:
        """Delete every session holding ``token``. Return how many were removed."""

    # Tasks

    @abstractmethod
    def create_task(self, fields: Mapping[str, Any], creator_id: int) -> TaskEntity:
        """Insert a task created by ``creator_id`` and return it."""

    @abstractmethod
    def get_task(self, task_id: int) -> Optional[TaskEntity]:
        """Return a task by id, or None."""

    @abstractmethod
    def list_tasks(self, query: Optional[TaskQuery] = None) -> List[TaskEntity]:
        """Return a snapshot of matching tasks, newest first."""

    @abstractmethod
    def update_task(self, task_id: int, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        """
        Replace the given fields of a task and bump updated_at.
        Return the updated task, or None if not found.
        """

    @abstractmethod
    def delete_task(self, task_id: int) -> bool:
        """Delete a task by id. Return True if deleted, False if not found."""

    def close(self) -> None:
        """Release any resources held by the backend."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._users: Dict[int, UserEntity] = {}
        self._sessions: Dict[int, SessionEntity] = {}
        self._tasks: Dict[int, TaskEntity] = {}
        self._next_ids = {"users": 1, "sessions": 1, "tasks": 1}

    def _allocate_id(self, table: str) -> int:
        with self._lock:
            i = self._next_ids[table]
            self._next_ids[table] += 1
            return i

    def create_user(self, email: str, password_hash: str, name: str) -> UserEntity:
        with self._lock:
            if any(u["email"] == email for u in self._users.values()):
                raise ConflictError("An account with this email already exists")
            user: UserEntity = {
                "id": self._allocate_id("users"),
                "email": email,
                "password_hash": password_hash,
                "name": name,
            }
            self._users[user["id"]] = user
            return user.copy()

    def get_user(self, user_id: int) -> Optional[UserEntity]:
        with self._lock:
            user = self._users.get(user_id)
            return None if user is None else user.copy()

    def get_user_by_email(self, email: str) -> Optional[UserEntity]:
        with self._lock:
            for user in self._users.values():
                if user["email"] == email:
                    return user.copy()
            return None

    def list_users(self) -> List[UserEntity]:
        with self._lock:
            users = sorted(self._users.values(), key=lambda u: (u["name"], u["id"]))
            return [u.copy() for u in users]

    def create_session(self, token: str, user_id: int) -> SessionEntity:
        with self._lock:
            if any(s["token"] == token for s in self._sessions.values()):
                raise ConflictError("Session token already in use")
            session: SessionEntity = {
                "id": self._allocate_id("sessions"),
                "token": token,
                "user_id": user_id,
                "created_at": datetime.now(),
            }
            self._sessions[session["id"]] = session
            return session.copy()

    def get_session_by_token(self, token: str) -> Optional[SessionEntity]:
        with self._lock:
            for session in self._sessions.values():
                if session["token"] == token:
                    return session.copy()
            return None

    def delete_sessions_by_token(self, token: str) -> int:
        with self._lock:
            doomed = [sid for sid, s in self._sessions.items() if s["token"] == token]
            for sid in doomed:
                del self._sessions[sid]
            return len(doomed)

    def create_task(self, fields: Mapping[str, Any], creator_id: int) -> TaskEntity:
        now = next_timestamp()
        with self._lock:
            task: TaskEntity = {
                "id": self._allocate_id("tasks"),
                "name": fields["name"],
                "description": fields.get("description") or "",
                "priority": fields["priority"],
                "status": fields["status"],
                "due_date": fields.get("due_date"),
                "assignee_id": fields.get("assignee_id"),
                "creator_id": creator_id,
                "created_at": now,
                "updated_at": now,
            }
            self._tasks[task["id"]] = task
            return task.copy()

    def get_task(self, task_id: int) -> Optional[TaskEntity]:
        with self._lock:
            task = self._tasks.get(task_id)
            return None if task is None else task.copy()

    def list_tasks(self, query: Optional[TaskQuery] = None) -> List[TaskEntity]:
        q = query or TaskQuery()
        with self._lock:
            matching = [t for t in self._tasks.values() if task_matches(t, q)]
            # Return copies to avoid external mutation
            return [t.copy() for t in newest_first(matching)]

    def update_task(self, task_id: int, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._tasks.get(task_id)
            if existing is None:
                return None

            updated = existing.copy()
            for key, value in changes.items():
                if key in MUTABLE_TASK_FIELDS:
                    updated[key] = value  # type: ignore[literal-required]
            updated["updated_at"] = next_timestamp(existing["updated_at"])

            self._tasks[task_id] = updated
            return updated.copy()

    def delete_task(self, task_id: int) -> bool:
        with self._lock:
            return self._tasks.pop(task_id, None) is not None


# PUBLIC_INTERFACE
def open_repository(settings: Optional[Settings] = None) -> Repository:
    """
    Open the configured storage backend. Call once per process.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository backed by the file at SQLITE_DB_PATH
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        logger.info("Opening SQLite repository at %s", settings.sqlite_db_path)
        return SQLiteRepository(settings.sqlite_db_path)
    logger.info("Opening in-memory repository")
    return InMemoryRepository()

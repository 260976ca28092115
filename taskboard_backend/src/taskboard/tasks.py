from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

from .errors import NotFoundError, ValidationError
from .models import (
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    TASK_PRIORITIES,
    TASK_STATUSES,
    TaskEntity,
    UserEntity,
)
from .repositories import Repository, TaskQuery
from .schemas import PublicUser, TaskForm, TaskOut, TaskUpdateForm

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TaskService:
    """
    Task CRUD, the narrow status transition used by board moves, and the
    dashboard aggregations.

    Every response goes through TaskOut, which only knows the id + name
    projection of users.
    """

    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    def _users_by_id(self, ids: Iterable[Optional[int]]) -> Dict[int, UserEntity]:
        users: Dict[int, UserEntity] = {}
        for user_id in {i for i in ids if i is not None}:
            user = self.repository.get_user(user_id)
            if user is not None:
                users[user_id] = user
        return users

    def _to_out(self, tasks: List[TaskEntity]) -> List[TaskOut]:
        ids: List[Optional[int]] = []
        for t in tasks:
            ids.extend((t["creator_id"], t["assignee_id"]))
        users = self._users_by_id(ids)
        return [
            TaskOut.from_entity(
                t,
                creator=users.get(t["creator_id"]),
                assignee=users.get(t["assignee_id"]) if t["assignee_id"] is not None else None,
            )
            for t in tasks
        ]

    def _check_assignee(self, assignee_id: Optional[int]) -> None:
        if assignee_id is not None and self.repository.get_user(assignee_id) is None:
            raise ValidationError("Assignee must be an existing user")

    def create_task(self, form: TaskForm, creator_id: int) -> TaskOut:
        """Create a task owned by ``creator_id``."""
        self._check_assignee(form.assignee_id)
        task = self.repository.create_task(
            {
                "name": form.name,
                "description": form.description or "",
                "priority": form.priority or DEFAULT_PRIORITY,
                "status": form.status or DEFAULT_STATUS,
                "due_date": form.due_date,
                "assignee_id": form.assignee_id,
            },
            creator_id=creator_id,
        )
        logger.info("User %s created task %s", creator_id, task["id"])
        return self._to_out([task])[0]

    def get_all_tasks(self, query: Optional[TaskQuery] = None) -> List[TaskOut]:
        """One-shot snapshot of tasks, newest first."""
        return self._to_out(self.repository.list_tasks(query))

    def get_task(self, task_id: int) -> TaskOut:
        task = self.repository.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return self._to_out([task])[0]

    def update_task(self, task_id: int, form: TaskUpdateForm) -> TaskOut:
        """Replace the provided fields of a task."""
        changes = form.changes()
        if "assignee_id" in changes:
            self._check_assignee(changes["assignee_id"])
        task = self.repository.update_task(task_id, changes)
        if task is None:
            raise NotFoundError("Task not found")
        logger.info("Task %s updated (%s)", task_id, ", ".join(sorted(changes)) or "no fields")
        return self._to_out([task])[0]

    def update_task_status(self, task_id: int, status: str) -> TaskOut:
        """
        Move a task to ``status``. Any status may move to any other; only the
        status (and updated_at) change.
        """
        if status not in TASK_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(TASK_STATUSES)}")
        task = self.repository.update_task(task_id, {"status": status})
        if task is None:
            raise NotFoundError("Task not found")
        logger.info("Task %s moved to %s", task_id, status)
        return self._to_out([task])[0]

    def delete_task(self, task_id: int) -> None:
        if not self.repository.delete_task(task_id):
            raise NotFoundError("Task not found")
        logger.info("Task %s deleted", task_id)

    def list_users(self) -> List[PublicUser]:
        """Assignee picker source: id + name only."""
        return [PublicUser(id=u["id"], name=u["name"]) for u in self.repository.list_users()]

    # Aggregations: recomputed from a fresh snapshot unless one is passed in,
    # so several counts can be folded from the same read.

    def snapshot(self) -> List[TaskEntity]:
        return self.repository.list_tasks()

    def _rows(self, snapshot: Optional[List[TaskEntity]]) -> List[TaskEntity]:
        return self.snapshot() if snapshot is None else snapshot

    def count_by_status(self, snapshot: Optional[List[TaskEntity]] = None) -> Dict[str, int]:
        counts = Counter(t["status"] for t in self._rows(snapshot))
        return {status: counts.get(status, 0) for status in TASK_STATUSES}

    def count_by_priority(self, snapshot: Optional[List[TaskEntity]] = None) -> Dict[str, int]:
        counts = Counter(t["priority"] for t in self._rows(snapshot))
        return {priority: counts.get(priority, 0) for priority in TASK_PRIORITIES}

    def count_by_assignee(
        self, snapshot: Optional[List[TaskEntity]] = None
    ) -> Dict[Optional[int], int]:
        counts = Counter(t["assignee_id"] for t in self._rows(snapshot))
        return dict(counts)

    def count_by_creation_month(self, snapshot: Optional[List[TaskEntity]] = None) -> Dict[str, int]:
        counts = Counter(t["created_at"].strftime("%Y-%m") for t in self._rows(snapshot))
        return {month: counts[month] for month in sorted(counts)}

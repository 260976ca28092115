"""
Client-side optimistic mirror of the task list.

The mirror is a disposable copy of the last snapshot the client saw, updated
before the server confirms a change so the UI can react immediately. It is
never authoritative and never reconciled by diffing: the next full fetch
replaces it wholesale. A failed authoritative call therefore leaves the mirror
wrong until that next fetch.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

from .models import TASK_STATUSES
from .projections import group_into_columns

DELETE = "delete"
TOGGLE_STATUS = "toggle-status"

R = TypeVar("R")


@dataclass(frozen=True)
class MirrorAction:
    kind: str
    task_id: int


def _as_dict(task: Any) -> Dict[str, Any]:
    if isinstance(task, Mapping):
        return dict(task)
    return task.model_dump()


# PUBLIC_INTERFACE
def reduce_tasks(tasks: List[Dict[str, Any]], action: MirrorAction) -> List[Dict[str, Any]]:
    """
    Apply a local action and return the new list. The input is not modified.

    - delete: drop the task from the local view
    - toggle-status: flip between "done" and "todo" (anything not done becomes done)
    """
    if action.kind == DELETE:
        return [dict(t) for t in tasks if t.get("id") != action.task_id]
    if action.kind == TOGGLE_STATUS:
        out = []
        for t in tasks:
            t = dict(t)
            if t.get("id") == action.task_id:
                t["status"] = "todo" if t.get("status") == "done" else "done"
            out.append(t)
        return out
    raise ValueError(f"Unsupported mirror action: {action.kind}")


# PUBLIC_INTERFACE
class TaskMirror:
    """Local cache of the task list with replace-on-next-fetch reconciliation."""

    def __init__(self, snapshot: Iterable[Any] = ()) -> None:
        self._tasks: List[Dict[str, Any]] = [_as_dict(t) for t in snapshot]

    @property
    def tasks(self) -> List[Dict[str, Any]]:
        return [dict(t) for t in self._tasks]

    def replace(self, snapshot: Iterable[Any]) -> None:
        """Discard local state and adopt an authoritative snapshot."""
        self._tasks = [_as_dict(t) for t in snapshot]

    def apply(self, action: MirrorAction) -> None:
        self._tasks = reduce_tasks(self._tasks, action)

    def move(self, task_id: int, status: str) -> None:
        """Board drag: change column membership directly."""
        if status not in TASK_STATUSES:
            raise ValueError(f"Unknown board column: {status}")
        for t in self._tasks:
            if t.get("id") == task_id:
                t["status"] = status

    def columns(self) -> Dict[str, List[Dict[str, Any]]]:
        return group_into_columns(self.tasks)

    def dispatch(self, action: MirrorAction, call: Callable[[], R]) -> R:
        """
        Apply ``action`` locally, then run the authoritative ``call`` and
        return its result untouched. The mirror is not rolled back on failure.
        """
        self.apply(action)
        return call()

    def get(self, task_id: int) -> Optional[Dict[str, Any]]:
        for t in self._tasks:
            if t.get("id") == task_id:
                return dict(t)
        return None

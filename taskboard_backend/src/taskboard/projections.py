"""
Pure, stateless views over task snapshots.

Nothing here touches storage or mutates its inputs: callers pass in the latest
snapshot and get fresh structures back for the board and the dashboard charts.
Tasks may be ``TaskOut`` models or plain mappings (the client mirror keeps
dicts).
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from .models import TASK_STATUSES

T = TypeVar("T")

STATUS_LABELS = {
    "todo": "To Do",
    "in_progress": "In Progress",
    "review": "Review",
    "done": "Done",
}

PRIORITY_LABELS = {
    "high": "High",
    "medium": "Medium",
    "low": "Low",
}

UNASSIGNED_LABEL = "Unassigned"
UNKNOWN_USER_LABEL = "Unknown user"


def _get(task: Any, key: str) -> Any:
    if isinstance(task, Mapping):
        return task.get(key)
    return getattr(task, key, None)


# PUBLIC_INTERFACE
def group_into_columns(tasks: Iterable[T]) -> Dict[str, List[T]]:
    """
    Group tasks into the four board columns, in workflow order.

    Input order is kept inside each column. A task whose status is not one of
    the four columns is not placed on the board.
    """
    columns: Dict[str, List[T]] = {status: [] for status in TASK_STATUSES}
    for task in tasks:
        status = _get(task, "status")
        if status in columns:
            columns[status].append(task)
    return columns


# PUBLIC_INTERFACE
def chart_data(
    counts: Mapping[Any, int], labels: Optional[Mapping[Any, str]] = None
) -> Dict[str, int]:
    """Turn an aggregate into a category -> count mapping for a chart."""
    out: Dict[str, int] = {}
    for key, count in counts.items():
        label = labels.get(key, str(key)) if labels else str(key)
        out[label] = out.get(label, 0) + int(count)
    return out


def status_chart(counts: Mapping[str, int]) -> Dict[str, int]:
    return chart_data(counts, STATUS_LABELS)


def priority_chart(counts: Mapping[str, int]) -> Dict[str, int]:
    return chart_data(counts, PRIORITY_LABELS)


# PUBLIC_INTERFACE
def assignee_chart(counts: Mapping[Optional[int], int], users: Sequence[Any]) -> Dict[str, int]:
    """
    Label assignee counts with display names.

    Unassigned tasks are counted under "Unassigned". Users sharing a display
    name share a bar.
    """
    names = {_get(u, "id"): _get(u, "name") for u in users}
    labels: Dict[Optional[int], str] = {None: UNASSIGNED_LABEL}
    for user_id in counts:
        if user_id is not None:
            labels[user_id] = names.get(user_id) or UNKNOWN_USER_LABEL
    ordered = sorted(counts.items(), key=lambda kv: (kv[0] is None, -kv[1]))
    return chart_data(dict(ordered), labels)


def _due_day(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


# PUBLIC_INTERFACE
def summarize(tasks: Sequence[Any], today: date) -> Dict[str, Any]:
    """Headline numbers for the dashboard cards."""
    by_status = {status: 0 for status in TASK_STATUSES}
    overdue = 0
    for task in tasks:
        status = _get(task, "status")
        if status in by_status:
            by_status[status] += 1
        due = _due_day(_get(task, "due_date"))
        if due is not None and due < today and status != "done":
            overdue += 1
    total = len(tasks)
    completion_rate = int(by_status["done"] * 100 / total) if total else 0
    return {
        "total": total,
        "by_status": by_status,
        "completion_rate": completion_rate,
        "overdue": overdue,
    }


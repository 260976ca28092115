"""
Mutation boundary between callers (form submissions, board drags) and the
services.

Every function here takes a flat field-value bag and/or a session token and
returns a response envelope; no exception crosses this boundary. The
session gate runs first, then form validation, then storage.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Mapping, Optional, Tuple, Type, TypeVar

from .auth import AuthService
from .errors import StorageError, TaskboardError
from .projections import (
    assignee_chart,
    group_into_columns,
    priority_chart,
    status_chart,
    summarize,
)
from .repositories import TaskQuery
from .schemas import (
    ActionResult,
    BoardResult,
    CurrentUserResult,
    DashboardResult,
    DashboardSummary,
    Envelope,
    LoginForm,
    SignupForm,
    StatusForm,
    TaskActionResult,
    TaskForm,
    TaskListResult,
    TaskResult,
    TaskUpdateForm,
    UserListResult,
    parse_form,
)
from .tasks import TaskService

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Envelope)

FormData = Optional[Mapping[str, Any]]


def _guard(result_cls: Type[E], fn: Callable[[], E]) -> E:
    """Run ``fn`` and turn any failure into an envelope of ``result_cls``."""
    try:
        return fn()
    except TaskboardError as exc:
        return result_cls(error=exc.message, code=exc.code)
    except Exception:
        logger.exception("Unexpected failure in %s", getattr(fn, "__name__", "action"))
        return result_cls(error=StorageError.default_message, code=StorageError.code)


# Authentication


# PUBLIC_INTERFACE
def signup(auth: AuthService, data: FormData) -> ActionResult:
    def run() -> ActionResult:
        auth.signup(parse_form(SignupForm, data))
        return ActionResult(success=True, message="Account created, please log in")

    return _guard(ActionResult, run)


# PUBLIC_INTERFACE
def login(auth: AuthService, data: FormData) -> Tuple[ActionResult, Optional[str]]:
    """
    Returns the envelope and, on success, the session token the caller must
    put in an HTTP-only, site-wide cookie.
    """
    token: Optional[str] = None

    def run() -> ActionResult:
        nonlocal token
        token = auth.login(parse_form(LoginForm, data))
        return ActionResult(success=True, message="Logged in")

    result = _guard(ActionResult, run)
    return result, (token if result.error is None else None)


# PUBLIC_INTERFACE
def logout(auth: AuthService, token: Optional[str]) -> ActionResult:
    def run() -> ActionResult:
        auth.logout(token)
        return ActionResult(success=True, message="Logged out")

    return _guard(ActionResult, run)


# PUBLIC_INTERFACE
def current_user(auth: AuthService, token: Optional[str]) -> CurrentUserResult:
    return CurrentUserResult(user=auth.get_current_user(token))


# Task mutations (all gated on a live session)


# PUBLIC_INTERFACE
def create_task(
    auth: AuthService, tasks: TaskService, token: Optional[str], data: FormData
) -> TaskActionResult:
    def run() -> TaskActionResult:
        user = auth.require_user(token)
        form = parse_form(TaskForm, data)
        task = tasks.create_task(form, creator_id=user.id)
        return TaskActionResult(success=True, message="Task created", task=task)

    return _guard(TaskActionResult, run)


# PUBLIC_INTERFACE
def update_task(
    auth: AuthService, tasks: TaskService, token: Optional[str], task_id: int, data: FormData
) -> TaskActionResult:
    def run() -> TaskActionResult:
        auth.require_user(token)
        form = parse_form(TaskUpdateForm, data)
        task = tasks.update_task(task_id, form)
        return TaskActionResult(success=True, message="Task updated", task=task)

    return _guard(TaskActionResult, run)


# PUBLIC_INTERFACE
def update_task_status(
    auth: AuthService, tasks: TaskService, token: Optional[str], task_id: int, data: FormData
) -> TaskActionResult:
    def run() -> TaskActionResult:
        auth.require_user(token)
        form = parse_form(StatusForm, data)
        task = tasks.update_task_status(task_id, form.status)
        return TaskActionResult(success=True, message="Task status updated", task=task)

    return _guard(TaskActionResult, run)


# PUBLIC_INTERFACE
def delete_task(
    auth: AuthService, tasks: TaskService, token: Optional[str], task_id: int
) -> ActionResult:
    def run() -> ActionResult:
        auth.require_user(token)
        tasks.delete_task(task_id)
        return ActionResult(success=True, message="Task deleted")

    return _guard(ActionResult, run)


# Reads


# PUBLIC_INTERFACE
def list_tasks(tasks: TaskService, query: Optional[TaskQuery] = None) -> TaskListResult:
    return _guard(TaskListResult, lambda: TaskListResult(tasks=tasks.get_all_tasks(query)))


# PUBLIC_INTERFACE
def get_task(tasks: TaskService, task_id: int) -> TaskResult:
    return _guard(TaskResult, lambda: TaskResult(task=tasks.get_task(task_id)))


# PUBLIC_INTERFACE
def list_users(tasks: TaskService) -> UserListResult:
    return _guard(UserListResult, lambda: UserListResult(users=tasks.list_users()))


# PUBLIC_INTERFACE
def board(tasks: TaskService, query: Optional[TaskQuery] = None) -> BoardResult:
    return _guard(
        BoardResult, lambda: BoardResult(columns=group_into_columns(tasks.get_all_tasks(query)))
    )


# PUBLIC_INTERFACE
def dashboard(tasks: TaskService, today: Optional[date] = None) -> DashboardResult:
    def run() -> DashboardResult:
        # One read feeds every figure
        snapshot = tasks.snapshot()
        return DashboardResult(
            summary=DashboardSummary(**summarize(snapshot, today or date.today())),
            by_status=status_chart(tasks.count_by_status(snapshot)),
            by_priority=priority_chart(tasks.count_by_priority(snapshot)),
            by_assignee=assignee_chart(tasks.count_by_assignee(snapshot), tasks.list_users()),
            by_month=tasks.count_by_creation_month(snapshot),
        )

    return _guard(DashboardResult, run)

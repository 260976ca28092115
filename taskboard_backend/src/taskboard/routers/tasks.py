from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse

from .. import actions
from ..auth import AuthService, get_auth_service, get_repository, get_session_token
from ..repositories import Repository, TaskQuery
from ..schemas import (
    ActionResult,
    TaskActionResult,
    TaskListResult,
    TaskResult,
    UserListResult,
)
from ..tasks import TaskService
from ..utils import envelope_response

router = APIRouter(
    prefix="/api/v1",
    tags=["tasks"],
)


def get_task_service(repo: Repository = Depends(get_repository)) -> TaskService:
    """
    Dependency wrapper building the task service around the shared storage handle.
    """
    return TaskService(repo)


def task_query(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    priority: Optional[str] = Query(None, description="Filter by priority"),
    assignee_id: Optional[int] = Query(None, description="Filter by assignee user id"),
    creator_id: Optional[int] = Query(None, description="Filter by creator user id"),
    unassigned: bool = Query(False, description="Only tasks without an assignee"),
    q: Optional[str] = Query(None, description="Search text for name/description"),
) -> TaskQuery:
    return TaskQuery(
        status=status_filter or None,
        priority=priority or None,
        assignee_id=assignee_id,
        creator_id=creator_id,
        unassigned=unassigned,
        search=q.strip() if q and q.strip() else None,
    )


# PUBLIC_INTERFACE
@router.get(
    "/tasks",
    response_model=TaskListResult,
    summary="List Tasks",
    description="Snapshot of all tasks matching the filters, newest first.",
)
def list_tasks(
    query: TaskQuery = Depends(task_query),
    tasks: TaskService = Depends(get_task_service),
) -> JSONResponse:
    return envelope_response(actions.list_tasks(tasks, query))


# PUBLIC_INTERFACE
@router.post(
    "/tasks",
    response_model=TaskActionResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task; the signed-in user becomes its creator.",
    responses={
        400: {"description": "Validation error"},
        401: {"description": "Not logged in"},
    },
)
def create_task(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    token: Optional[str] = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
    tasks: TaskService = Depends(get_task_service),
) -> JSONResponse:
    result = actions.create_task(auth, tasks, token, payload)
    return envelope_response(result, success_status=status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.get(
    "/tasks/{task_id}",
    response_model=TaskResult,
    summary="Get Task",
    responses={404: {"description": "Task not found"}},
)
def get_task(task_id: int, tasks: TaskService = Depends(get_task_service)) -> JSONResponse:
    return envelope_response(actions.get_task(tasks, task_id))


# PUBLIC_INTERFACE
@router.put(
    "/tasks/{task_id}",
    response_model=TaskActionResult,
    summary="Update Task",
    description="Replace the provided fields of a task. The creator never changes.",
    responses={
        400: {"description": "Validation error"},
        401: {"description": "Not logged in"},
        404: {"description": "Task not found"},
    },
)
def update_task(
    task_id: int,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    token: Optional[str] = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
    tasks: TaskService = Depends(get_task_service),
) -> JSONResponse:
    return envelope_response(actions.update_task(auth, tasks, token, task_id, payload))


# PUBLIC_INTERFACE
@router.patch(
    "/tasks/{task_id}/status",
    response_model=TaskActionResult,
    summary="Move Task",
    description="Change only the status of a task (board column move). Any status may move to any other.",
    responses={
        400: {"description": "Unknown status"},
        401: {"description": "Not logged in"},
        404: {"description": "Task not found"},
    },
)
def update_task_status(
    task_id: int,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    token: Optional[str] = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
    tasks: TaskService = Depends(get_task_service),
) -> JSONResponse:
    return envelope_response(actions.update_task_status(auth, tasks, token, task_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/tasks/{task_id}",
    response_model=ActionResult,
    summary="Delete Task",
    responses={
        401: {"description": "Not logged in"},
        404: {"description": "Task not found"},
    },
)
def delete_task(
    task_id: int,
    token: Optional[str] = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
    tasks: TaskService = Depends(get_task_service),
) -> JSONResponse:
    return envelope_response(actions.delete_task(auth, tasks, token, task_id))


# PUBLIC_INTERFACE
@router.get(
    "/users",
    response_model=UserListResult,
    summary="List Users",
    description="Users available as assignees (id and name only).",
)
def list_users(tasks: TaskService = Depends(get_task_service)) -> JSONResponse:
    return envelope_response(actions.list_users(tasks))

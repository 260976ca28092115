from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from .. import actions
from ..repositories import TaskQuery
from ..schemas import BoardResult, DashboardResult
from ..tasks import TaskService
from ..utils import envelope_response
from .tasks import get_task_service, task_query

router = APIRouter(
    prefix="/api/v1",
    tags=["views"],
)


# PUBLIC_INTERFACE
@router.get(
    "/board",
    response_model=BoardResult,
    summary="Kanban Board",
    description="Tasks grouped into the todo, in_progress, review and done columns.",
)
def board(
    query: TaskQuery = Depends(task_query),
    tasks: TaskService = Depends(get_task_service),
) -> JSONResponse:
    return envelope_response(actions.board(tasks, query))


# PUBLIC_INTERFACE
@router.get(
    "/dashboard",
    response_model=DashboardResult,
    summary="Dashboard",
    description="Summary cards and chart-ready counts by status, priority, assignee and creation month.",
)
def dashboard(tasks: TaskService = Depends(get_task_service)) -> JSONResponse:
    return envelope_response(actions.dashboard(tasks))

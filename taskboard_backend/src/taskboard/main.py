from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .repositories import Repository, open_repository
from .routers import auth as auth_router
from .routers import dashboard as dashboard_router
from .routers import tasks as tasks_router
from .settings import Settings, get_settings
from .utils import configure_logging

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Signup, login, logout and the current session."},
    {
        "name": "tasks",
        "description": "Task CRUD, board column moves and the assignee list.",
    },
    {"name": "views", "description": "Kanban board and dashboard aggregates."},
]


# PUBLIC_INTERFACE
def create_app(
    repository: Optional[Repository] = None, settings: Optional[Settings] = None
) -> FastAPI:
    """
    Build the application around a storage handle.

    The repository is opened once here (or injected, e.g. by tests) and shared
    by every request through ``app.state``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    repo = repository or open_repository(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            app.state.repository.close()

    app = FastAPI(
        title="Taskboard Backend",
        description="Team task tracker: task CRUD, Kanban board, dashboard analytics and session auth.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.repository = repo

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Render malformed requests (non-object bodies, bad path/query types) in the
        envelope shape.

        Response format:
            {
                "error": "Request validation failed",
                "success": false,
                "message": "...",
                "detail": [... pydantic/fastapi error details ...]
            }
        """
        errors = exc.errors()
        first = errors[0].get("msg") if errors else None
        return JSONResponse(
            status_code=422,
            content={
                "error": "Request validation failed",
                "success": False,
                "message": first,
                "detail": [
                    {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                    for e in errors
                ],
            },
        )

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(auth_router.router)
    app.include_router(tasks_router.router)
    app.include_router(dashboard_router.router)

    logger.info("Taskboard app created (backend=%s)", settings.persistence_backend)
    return app


app = create_app()

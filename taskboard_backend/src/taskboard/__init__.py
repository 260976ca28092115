"""
Taskboard backend package.

Team task tracking service: session auth, task CRUD, Kanban board and
dashboard aggregates. The FastAPI application lives in ``main`` (``create_app``
builds one around an injected storage handle).
"""

__version__ = "0.1.0"

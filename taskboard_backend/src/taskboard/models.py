from __future__ import annotations

from datetime import datetime
from typing import Optional, TypedDict

# Board/workflow order. Status is a label set: any value may move to any other.
TASK_STATUSES = ("todo", "in_progress", "review", "done")
TASK_PRIORITIES = ("high", "medium", "low")

DEFAULT_STATUS = "todo"
DEFAULT_PRIORITY = "medium"


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    A stored user record.

    Fields:
    - id: Unique integer identifier, stable for the lifetime of the account
    - email: Unique login email, case-sensitive as stored
    - password_hash: bcrypt hash; never leaves the service
    - name: Display name
    """

    id: int
    email: str
    password_hash: str
    name: str


# PUBLIC_INTERFACE
class SessionEntity(TypedDict):
    """A login session; the token is the opaque bearer credential."""

    id: int
    token: str
    user_id: int
    created_at: datetime


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A stored task record.

    Fields:
    - id: Unique integer identifier
    - name: Required, non-empty title
    - description: Free text, may be empty
    - priority: One of TASK_PRIORITIES
    - status: One of TASK_STATUSES
    - due_date: Optional, pinned to noon of its calendar day
    - assignee_id: Optional user reference
    - creator_id: Required user reference, immutable after creation
    - created_at / updated_at: system-maintained timestamps
    """

    id: int
    name: str
    description: str
    priority: str
    status: str
    due_date: Optional[datetime]
    assignee_id: Optional[int]
    creator_id: int
    created_at: datetime
    updated_at: datetime

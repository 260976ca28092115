from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import TASK_PRIORITIES, TASK_STATUSES, TaskEntity, UserEntity
from .security import PASSWORD_MAX_BYTES, password_fits
from .utils import pin_to_noon

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]

NAME_MAX_LENGTH = 200

FormT = TypeVar("FormT", bound=BaseModel)


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Normalize due_date input to noon of its calendar day.

    - None or an empty string means "no due date".
    - A date is pinned to 12:00.
    - A datetime (or ISO datetime string) keeps only its calendar date, then is pinned to 12:00.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return pin_to_noon(value.date())

    if isinstance(value, date):
        return pin_to_noon(value)

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            return pin_to_noon(date.fromisoformat(s))
        except ValueError:
            pass
        try:
            return pin_to_noon(datetime.fromisoformat(s.replace("Z", "+00:00")).date())
        except ValueError as e:
            raise ValueError(
                "Invalid due date. Use an ISO8601 date (e.g., '2025-01-31')."
            ) from e

    raise ValueError("Invalid type for due date; expected date, datetime, or ISO8601 string.")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f"{label} is required")
    return value


def _describe(exc: PydanticValidationError) -> str:
    """Turn the first pydantic error into a short user-facing message."""
    first = exc.errors()[0]
    message = str(first.get("msg", "Invalid input"))
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {message}" if loc else message


# PUBLIC_INTERFACE
def parse_form(model: Type[FormT], data: Optional[Mapping[str, Any]]) -> FormT:
    """
    Validate a flat field-value bag (a form submission) into a typed input struct.

    Raises:
        ValidationError: with a short human-readable message.
    """
    try:
        return model.model_validate(dict(data or {}))
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


# PUBLIC_INTERFACE
class SignupForm(BaseModel):
    """Fields required to register a new account."""

    model_config = ConfigDict(extra="ignore", validate_default=True)

    email: Optional[str] = Field(default=None, description="Login email, stored as given")
    password: Optional[str] = Field(default=None, description="Plaintext password, hashed before storage")
    name: Optional[str] = Field(default=None, description="Display name")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> str:
        return _require_text(v, "Email").strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> str:
        v = _require_text(v, "Password")
        if not password_fits(v):
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> str:
        return _require_text(v, "Name").strip()


# PUBLIC_INTERFACE
class LoginForm(BaseModel):
    """Credentials submitted by the login form."""

    model_config = ConfigDict(extra="ignore", validate_default=True)

    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> str:
        return _require_text(v, "Email").strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> str:
        return _require_text(v, "Password")


def _check_name(v: Optional[str]) -> str:
    s = _require_text(v, "Name").strip()
    if len(s) > NAME_MAX_LENGTH:
        raise ValueError(f"Name must be at most {NAME_MAX_LENGTH} characters")
    return s


def _check_choice(v: Optional[str], choices: tuple, label: str) -> Optional[str]:
    if v is None:
        return None
    s = v.strip()
    if s not in choices:
        raise ValueError(f"{label} must be one of: {', '.join(choices)}")
    return s


# PUBLIC_INTERFACE
class TaskForm(BaseModel):
    """
    Fields accepted when creating a task.

    Status and priority default to 'todo' and 'medium' when omitted or blank.
    """

    model_config = ConfigDict(
        extra="ignore",
        validate_default=True,
        json_schema_extra={
            "example": {
                "name": "Write report",
                "description": "Quarterly numbers",
                "priority": "high",
                "status": "todo",
                "due_date": "2025-02-01",
                "assignee_id": 2,
            }
        },
    )

    name: Optional[str] = Field(default=None, description="Task title (1..200 chars)")
    description: Optional[str] = Field(default="", description="Free text, may be empty")
    priority: Optional[str] = Field(default=None, description="high, medium or low")
    status: Optional[str] = Field(default=None, description="todo, in_progress, review or done")
    due_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("due_date", "dueDate"),
        description="Calendar date; stored as noon of that day",
    )
    assignee_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("assignee_id", "assigneeId"),
        description="User id of the assignee, or null for unassigned",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> str:
        return _check_name(v)

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> str:
        return "" if v is None else v

    @field_validator("priority", "status", "assignee_id", mode="before")
    @classmethod
    def blank_is_missing(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, TASK_PRIORITIES, "Priority")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, TASK_STATUSES, "Status")

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskUpdateForm(BaseModel):
    """
    Fields accepted when editing a task. Only provided fields are replaced.

    An explicit null (or blank) assignee or due date clears it. Blank priority
    or status leaves the stored value unchanged. The creator cannot be changed.
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("due_date", "dueDate")
    )
    assignee_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("assignee_id", "assigneeId")
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> str:
        return _check_name(v)

    @field_validator("priority", "status", "assignee_id", mode="before")
    @classmethod
    def blank_is_missing(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, TASK_PRIORITIES, "Priority")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, TASK_STATUSES, "Status")

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)

    def changes(self) -> Dict[str, Any]:
        """Return the field changes to persist, keyed by storage column."""
        out: Dict[str, Any] = {}
        provided = self.model_fields_set
        if "name" in provided:
            out["name"] = self.name
        if "description" in provided:
            out["description"] = self.description or ""
        if self.priority is not None:
            out["priority"] = self.priority
        if self.status is not None:
            out["status"] = self.status
        if "due_date" in provided:
            out["due_date"] = self.due_date
        if "assignee_id" in provided:
            out["assignee_id"] = self.assignee_id
        return out


# PUBLIC_INTERFACE
class StatusForm(BaseModel):
    """The single field accepted by a board-column move."""

    model_config = ConfigDict(extra="ignore", validate_default=True)

    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> str:
        s = _require_text(v, "Status").strip()
        if s not in TASK_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(TASK_STATUSES)}")
        return s


# PUBLIC_INTERFACE
class PublicUser(BaseModel):
    """
    The only user shape allowed inside task-bearing responses.

    Email and password hash are deliberately absent.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


# PUBLIC_INTERFACE
def safe_user(user: Optional[UserEntity]) -> Optional[PublicUser]:
    """Project a stored user down to id + name."""
    if user is None:
        return None
    return PublicUser(id=user["id"], name=user["name"])


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    """The signed-in user as returned to that same user."""

    model_config = ConfigDict(extra="ignore")

    id: int
    email: str
    name: str


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": 7,
                "name": "Write report",
                "description": "",
                "priority": "high",
                "status": "todo",
                "due_date": "2025-02-01T12:00:00",
                "assignee_id": None,
                "creator_id": 1,
                "assignee": None,
                "creator": {"id": 1, "name": "Ada"},
                "created_at": "2025-01-25T10:15:30.123456",
                "updated_at": "2025-01-25T10:15:30.123456",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the task")
    name: str
    description: str = ""
    priority: str
    status: str
    due_date: Optional[datetime] = None
    assignee_id: Optional[int] = None
    creator_id: int
    assignee: Optional[PublicUser] = None
    creator: Optional[PublicUser] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(
        cls,
        task: TaskEntity,
        creator: Optional[UserEntity],
        assignee: Optional[UserEntity],
    ) -> "TaskOut":
        return cls(
            id=task["id"],
            name=task["name"],
            description=task["description"],
            priority=task["priority"],
            status=task["status"],
            due_date=task["due_date"],
            assignee_id=task["assignee_id"],
            creator_id=task["creator_id"],
            assignee=safe_user(assignee),
            creator=safe_user(creator),
            created_at=task["created_at"],
            updated_at=task["updated_at"],
        )


# PUBLIC_INTERFACE
class Envelope(BaseModel):
    """
    Common base of every response envelope.

    ``error`` is the sole failure signal. ``code`` names the error class for
    the HTTP layer and is not serialized.
    """

    error: Optional[str] = None
    code: Optional[str] = Field(default=None, exclude=True)


# PUBLIC_INTERFACE
class ActionResult(Envelope):
    """
    Uniform envelope returned by every mutating operation.

    Callers must treat ``error is not None`` as failure regardless of ``success``.
    """

    success: bool = False
    message: Optional[str] = None


class TaskActionResult(ActionResult):
    task: Optional[TaskOut] = None


class TaskListResult(Envelope):
    tasks: List[TaskOut] = Field(default_factory=list)


class TaskResult(Envelope):
    task: Optional[TaskOut] = None


class UserListResult(Envelope):
    users: List[PublicUser] = Field(default_factory=list)


class CurrentUserResult(Envelope):
    user: Optional[UserOut] = None


class BoardResult(Envelope):
    columns: Dict[str, List[TaskOut]] = Field(default_factory=dict)


class DashboardSummary(BaseModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    completion_rate: int = Field(0, description="Integer percent of tasks that are done")
    overdue: int = 0


class DashboardResult(Envelope):
    summary: Optional[DashboardSummary] = None
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
    by_assignee: Dict[str, int] = Field(default_factory=dict)
    by_month: Dict[str, int] = Field(default_factory=dict)

from __future__ import annotations

import logging
import sys
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel

# Hour used to pin date-only values so timezone rounding never crosses midnight.
DUE_DATE_HOUR = 12

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# PUBLIC_INTERFACE
def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stdout handler on the package logger.

    Safe to call repeatedly; the handler is only added once.
    """
    package_logger = logging.getLogger("src.taskboard")
    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        level_value = logging.INFO
    package_logger.setLevel(level_value)
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        package_logger.addHandler(handler)


# PUBLIC_INTERFACE
def pin_to_noon(value: date) -> datetime:
    """Represent a calendar date as noon of that day."""
    return datetime(value.year, value.month, value.day, DUE_DATE_HOUR, 0, 0)


def next_timestamp(after: Optional[datetime] = None) -> datetime:
    """
    Current local time, strictly later than ``after`` when given.

    Keeps updated_at monotonic even if the clock has not advanced since the
    previous write.
    """
    now = datetime.now()
    if after is not None and now <= after:
        return after + timedelta(microseconds=1)
    return now


# HTTP status for each error code carried by a response envelope.
STATUS_BY_ERROR_CODE = {
    "ValidationError": 400,
    "AuthError": 401,
    "NotAuthenticatedError": 401,
    "NotFoundError": 404,
    "ConflictError": 409,
    "StorageError": 500,
}


# PUBLIC_INTERFACE
def envelope_response(result: BaseModel, success_status: int = 200) -> JSONResponse:
    """
    Serialize a response envelope, choosing the HTTP status from its error code.

    The body is the envelope either way; ``error`` stays the contract.
    """
    code = getattr(result, "code", None)
    status_code = STATUS_BY_ERROR_CODE.get(code, 500) if code else success_status
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))

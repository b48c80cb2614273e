"""
Custom exception hierarchy for the Wellio progress engine.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class WellioException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ResourceNotFoundError(WellioException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    resource = "Resource"

    def __init__(self, resource_id: int | str):
        super().__init__(
            message=f"{self.resource} {resource_id} not found.",
            details={"id": resource_id},
        )


class ClientNotFoundError(ResourceNotFoundError):
    code = "CLIENT_NOT_FOUND"
    resource = "Client"


class GoalNotFoundError(ResourceNotFoundError):
    code = "GOAL_NOT_FOUND"
    resource = "Goal"


class ProgressEventNotFoundError(ResourceNotFoundError):
    code = "EVENT_NOT_FOUND"
    resource = "Progress event"


class ScheduleItemNotFoundError(ResourceNotFoundError):
    code = "SCHEDULE_ITEM_NOT_FOUND"
    resource = "Schedule item"


class SubscriptionNotFoundError(ResourceNotFoundError):
    code = "SUBSCRIPTION_NOT_FOUND"
    resource = "Push subscription"


class InvalidEventPayloadError(WellioException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_EVENT_PAYLOAD"

    def __init__(self, event_type: str, errors: list[dict[str, Any]]):
        super().__init__(
            message=f"Payload is not valid for event type '{event_type}'.",
            details={"event_type": event_type, "errors": errors},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def wellio_exception_handler(request: Request, exc: WellioException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )

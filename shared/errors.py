"""
Shared error handling for the AI Workflow service.

Only two failure kinds ever reach a caller: bad input and upstream failure.
Everything else that goes wrong in a non-critical subsystem is reported as a
degraded step and never raised.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional

from pydantic import BaseModel, Field


STATUS_BAD_INPUT = "bad-input"
STATUS_UPSTREAM_FAILURE = "upstream-failure"
STATUS_INTERNAL = "internal"

HTTP_STATUS_BY_CLASS = {
    STATUS_BAD_INPUT: 400,
    STATUS_UPSTREAM_FAILURE: 502,
    STATUS_INTERNAL: 500,
}


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    status_class: str = STATUS_INTERNAL
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_timestamp)


class WorkflowException(Exception):
    """Base exception for workflow services."""

    status_class = STATUS_INTERNAL

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CLASS[self.status_class]

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            status_class=self.status_class,
            details=self.details
        )


class InvalidInputError(WorkflowException):
    """The request was rejected before any external call."""

    status_class = STATUS_BAD_INPUT

    def __init__(self, message: str = "Invalid input", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_INPUT", message, details)


class UpstreamFailureError(WorkflowException):
    """A model invocation failed or timed out."""

    status_class = STATUS_UPSTREAM_FAILURE

    def __init__(self, service: str, message: str = "Upstream call failed", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("UPSTREAM_FAILURE", f"{service}: {message}", details)

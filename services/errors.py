"""Errors surfaced to HTTP clients by the relay services."""

from __future__ import annotations

from typing import Any, Dict, Optional


class RelayError(Exception):
    status_code = 500
    error = "Internal server error"

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None) -> None:
        self.error = error or self.error
        self.message = message
        super().__init__(message or self.error)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error}
        if self.message is not None:
            payload["message"] = self.message
        return payload


class ValidationError(RelayError):
    """A submission is missing a required field or carries an unusable value."""

    status_code = 400
    error = "Invalid sensor data"


class NotFoundError(RelayError):
    """Nothing has been ingested yet."""

    status_code = 404
    error = "No sensor data available"


class InternalError(RelayError):
    """Unexpected failure while handling a request."""

    status_code = 500

"""Error taxonomy shared by the executor, the handlers and the HTTP layer.

Every error carries the HTTP status it maps to at the route boundary and a
``retryable`` flag. Nothing retries automatically; the flag only tells the
caller whether re-running the same work could plausibly succeed.
"""

from __future__ import annotations

from typing import Any


class DispatchError(Exception):
    """Base class for all gridmind dispatch failures."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, *, retryable: bool | None = None, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": self.message,
            "type": type(self).__name__,
            "retryable": self.retryable,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(DispatchError):
    """Missing or malformed parameters (the caller's fault)."""

    status_code = 400


class NotFoundError(DispatchError):
    """Unknown task, provider or capability."""

    status_code = 404


class ConflictError(DispatchError):
    """Requested status change is not a valid edge, or another worker won the claim."""

    status_code = 409


class UnavailableError(DispatchError):
    """A provider dependency is not configured (e.g. no API key)."""

    status_code = 503
    retryable = True


class ExecutionError(DispatchError):
    """A capability handler raised while running."""

    status_code = 500

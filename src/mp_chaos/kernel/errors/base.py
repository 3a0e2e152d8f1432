"""Root error class for the mp-chaos error hierarchy."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


class BaseError(Exception):
    """Root of the error hierarchy.

    Args:
        message: Human-readable description.
        code: Machine-readable identifier (defaults to ``default_code``).
        status_code: HTTP status the error converts to at the request boundary.
        context: Arbitrary diagnostic key/values (serialisable dict).
        cause: Original exception that triggered this error.
    """

    default_code: str = "INTERNAL_ERROR"
    default_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status
        self.context: dict[str, Any] = context or {}
        self.timestamp = datetime.now(UTC).isoformat()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, status_code={self.status_code!r}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict (safe for logging / HTTP responses)."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "statusCode": self.status_code,
            "timestamp": self.timestamp,
        }
        if self.context:
            payload["context"] = dict(self.context)
        if self.cause is not None:
            payload["cause"] = repr(self.cause)
        return payload


__all__ = ["BaseError"]

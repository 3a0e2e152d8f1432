"""Genuine (non-injected) request errors raised by route handlers."""

from __future__ import annotations

from mp_chaos.kernel.errors.base import BaseError


class ValidationError(BaseError):
    """Request parameters or body failed validation."""

    default_code = "VALIDATION_FAILED"
    default_status = 400


class NotFoundError(BaseError):
    """A requested resource does not exist."""

    default_code = "NOT_FOUND"
    default_status = 404


class UnprocessableError(BaseError):
    """The request is well-formed but violates a business rule."""

    default_code = "UNPROCESSABLE"
    default_status = 422


class SpanStateError(BaseError):
    """A span was mutated or ended outside its legal lifecycle.

    This is a programming error, not a runtime fault: it is never converted
    into a wire response by the fault taxonomy.
    """

    default_code = "SPAN_STATE_ERROR"


__all__ = ["NotFoundError", "SpanStateError", "UnprocessableError", "ValidationError"]

"""Injected-fault errors – one error family, one variant per ``FaultKind``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mp_chaos.kernel.errors.base import BaseError

if TYPE_CHECKING:
    from mp_chaos.faults.taxonomy import FaultKind, FaultRecord


class FaultError(BaseError):
    """A simulated failure raised by the decision engine or an injection layer.

    The HTTP contract is fully described by :attr:`record`; callers never need
    to branch on :attr:`kind` to know the status code or the error code.
    """

    default_code = "BUSYBOX_FAULT"

    def __init__(
        self,
        record: "FaultRecord",
        message: str,
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=record.error_code,
            status_code=record.http_status,
            context=context,
        )
        self.record = record

    @property
    def kind(self) -> "FaultKind":
        return self.record.kind

    @property
    def retry_after_seconds(self) -> int | None:
        return self.record.retry_after_seconds

    @property
    def is_injected(self) -> bool:
        """``True`` when the error was produced by chaos injection."""
        return self.context.get("busybox") is True

    def __repr__(self) -> str:
        return f"FaultError(kind={self.kind.value!r}, code={self.code!r}, status_code={self.status_code!r})"


__all__ = ["FaultError"]

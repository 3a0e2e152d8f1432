"""Observability – SpanKind, SpanStatus, ExceptionRecord and the SpanExporter port."""
from __future__ import annotations

import abc
import dataclasses
import traceback
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mp_chaos.observability.tracing.span import Trace


class SpanKind(str, Enum):
    INTERNAL = "INTERNAL"
    SERVER = "SERVER"
    CLIENT = "CLIENT"


class SpanStatus(str, Enum):
    """``UNSET`` is the only non-terminal state; ``OK`` and ``ERROR`` are final."""
    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


@dataclasses.dataclass(frozen=True)
class ExceptionRecord:
    """Structured exception detail recorded on a failed span."""
    type: str
    message: str
    code: str | None = None
    status_code: int | None = None
    context: dict[str, Any] = dataclasses.field(default_factory=dict)
    stacktrace: str = ""

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ExceptionRecord":
        context = getattr(exc, "context", None)
        return cls(
            type=type(exc).__name__,
            message=str(exc) or type(exc).__name__,
            code=getattr(exc, "code", None),
            status_code=getattr(exc, "status_code", None),
            context=dict(context) if isinstance(context, dict) else {},
            stacktrace="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


class SpanExporter(abc.ABC):
    """Port: receive every trace once its root span has ended."""

    @abc.abstractmethod
    def export(self, trace: "Trace") -> None: ...


__all__ = ["ExceptionRecord", "SpanExporter", "SpanKind", "SpanStatus"]

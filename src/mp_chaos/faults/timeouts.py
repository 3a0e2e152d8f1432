"""Faults – TimeoutPolicy.

Turns an over-long await into the taxonomy's ``timeout`` fault (504). This is
the only path on which simulated slowness becomes an error; everywhere else a
``timeout`` decision only stretches the delay.
"""
from __future__ import annotations

import asyncio
import dataclasses
from typing import Any, Awaitable, Callable, TypeVar

from mp_chaos.faults.taxonomy import FaultKind, record_for
from mp_chaos.kernel.errors import FaultError

T = TypeVar("T")


@dataclasses.dataclass
class TimeoutPolicy:
    """Configuration for timeout enforcement."""
    timeout_ms: float
    upstream_service: str = "upstream"
    operation: str = "request"
    context: dict[str, Any] = dataclasses.field(default_factory=dict)

    async def execute(self, func: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(func(), timeout=self.timeout_ms / 1000)
        except asyncio.TimeoutError as exc:
            raise self.to_fault() from exc

    def to_fault(self) -> FaultError:
        record = record_for(FaultKind.TIMEOUT)
        context = {
            **self.context,
            "kind": record.kind.value,
            "upstream_service": self.upstream_service,
            "operation": self.operation,
            "timeout_threshold_ms": self.timeout_ms,
            "waited_ms": self.timeout_ms,
        }
        return FaultError(record, record.format_message(context), context=context)


__all__ = ["TimeoutPolicy"]

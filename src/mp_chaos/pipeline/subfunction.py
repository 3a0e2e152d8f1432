"""Pipeline – SubfunctionLayer: crashes inside downstream computations."""
from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, TypeVar

from mp_chaos.faults.engine import FaultDecisionEngine
from mp_chaos.faults.taxonomy import FaultKind

F = TypeVar("F", bound=Callable[..., Any])


class SubfunctionLayer:
    """Evaluate ``subfunction_crash`` at computation boundaries.

    The raised fault is not re-wrapped: it bubbles through the enclosing spans
    to the gateway's existing error path.
    """

    def __init__(self, engine: FaultDecisionEngine) -> None:
        self._engine = engine

    def guard(self, function: str, **context: Any) -> None:
        self._engine.inject_if_due(FaultKind.SUBFUNCTION_CRASH, {"function": function, **context})

    def crash_point(self, name: str | None = None) -> Callable[[F], F]:
        """Decorator: run :meth:`guard` before every call of the wrapped function."""

        def decorator(fn: F) -> F:
            label = name or fn.__qualname__

            if inspect.iscoroutinefunction(fn):

                @functools.wraps(fn)
                async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                    self.guard(label)
                    return await fn(*args, **kwargs)

                return async_wrapper  # type: ignore[return-value]

            @functools.wraps(fn)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                self.guard(label)
                return fn(*args, **kwargs)

            return wrapper  # type: ignore[return-value]

        return decorator


__all__ = ["SubfunctionLayer"]

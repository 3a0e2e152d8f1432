"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── FaultError           (faults.py, injected, taxonomy-backed)
    ├── ValidationError      (domain.py, 400)
    ├── NotFoundError        (domain.py, 404)
    ├── UnprocessableError   (domain.py, 422)
    └── SpanStateError       (domain.py, span lifecycle misuse)
"""

from mp_chaos.kernel.errors.base import BaseError
from mp_chaos.kernel.errors.domain import (
    NotFoundError,
    SpanStateError,
    UnprocessableError,
    ValidationError,
)
from mp_chaos.kernel.errors.faults import FaultError

__all__ = [
    "BaseError",
    "FaultError",
    "NotFoundError",
    "SpanStateError",
    "UnprocessableError",
    "ValidationError",
]

"""Observability – process-unique request identifiers."""
from __future__ import annotations

import itertools
import random
import string
import threading
import time

_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


class RequestIdGenerator:
    """Generate ``<prefix>_<ts36>_<seq36>_<rand4>`` identifiers.

    The sequence number is a lock-guarded monotonic counter, so ids are unique
    within the process for its lifetime; the random suffix only adds entropy.
    """

    def __init__(self, prefix: str = "req", rng: random.Random | None = None) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._rng = rng or random.Random()

    def next_id(self) -> str:
        with self._lock:
            seq = next(self._counter)
            suffix = "".join(self._rng.choice(_ALPHABET) for _ in range(4))
        ts = to_base36(int(time.time() * 1000))
        return f"{self._prefix}_{ts}_{to_base36(seq).rjust(4, '0')}_{suffix}"

    __call__ = next_id


def random_hex(rng: random.Random, length: int) -> str:
    """Hex string of *length* characters (trace / span identifiers)."""
    return f"{rng.getrandbits(length * 4):0{length}x}"


__all__ = ["RequestIdGenerator", "random_hex", "to_base36"]

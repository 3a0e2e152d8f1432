"""Faults – FaultConfig snapshot, FaultConfigPatch and the process-wide FaultConfigStore."""
from __future__ import annotations

import dataclasses
import math
import threading
from types import MappingProxyType
from typing import Any, Mapping

from mp_chaos.faults.taxonomy import FaultKind
from mp_chaos.kernel.errors import ValidationError
from mp_chaos.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FIRE_RATE = 0.3


def clamp_rate(value: float) -> float:
    """Clamp *value* into ``[0, 1]``; NaN sanitises to ``0.0``."""
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def _all_kinds(value: bool = True) -> Mapping[FaultKind, bool]:
    return MappingProxyType({kind: value for kind in FaultKind})


@dataclasses.dataclass(frozen=True)
class FaultConfig:
    """Immutable snapshot of the chaos control plane."""

    enabled: bool = False
    fire_rate: float = DEFAULT_FIRE_RATE
    enabled_kinds: Mapping[FaultKind, bool] = dataclasses.field(default_factory=_all_kinds)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fire_rate", clamp_rate(self.fire_rate))
        kinds = {kind: True for kind in FaultKind}
        kinds.update({FaultKind(k): bool(v) for k, v in self.enabled_kinds.items()})
        object.__setattr__(self, "enabled_kinds", MappingProxyType(kinds))

    def is_kind_enabled(self, kind: FaultKind) -> bool:
        return self.enabled_kinds.get(kind, False)

    def apply(self, patch: "FaultConfigPatch") -> "FaultConfig":
        """Return a new snapshot with the fields present in *patch* applied."""
        kinds = dict(self.enabled_kinds)
        kinds.update(patch.enabled_kinds)
        return FaultConfig(
            enabled=self.enabled if patch.enabled is None else patch.enabled,
            fire_rate=self.fire_rate if patch.fire_rate is None else patch.fire_rate,
            enabled_kinds=kinds,
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "fireRate": self.fire_rate,
            "enabledKinds": {kind.value: flag for kind, flag in self.enabled_kinds.items()},
        }


class InvalidConfigPatchError(ValidationError):
    """The admin body could not be parsed into a :class:`FaultConfigPatch`."""

    default_code = "INVALID_CONFIG_PATCH"


@dataclasses.dataclass(frozen=True)
class FaultConfigPatch:
    """Partial update; ``None`` / missing entries keep their prior value."""

    enabled: bool | None = None
    fire_rate: float | None = None
    enabled_kinds: Mapping[FaultKind, bool] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_wire(cls, payload: Any) -> "FaultConfigPatch":
        """Parse the admin wire form ``{enabled?, fireRate?, enabledKinds?}``.

        ``errorRate`` is accepted as an alias of ``fireRate``. Unknown kinds in
        ``enabledKinds`` are ignored; values of the wrong JSON type are rejected.
        """
        if not isinstance(payload, Mapping):
            raise InvalidConfigPatchError("Config patch must be a JSON object")

        enabled = payload.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            raise InvalidConfigPatchError("'enabled' must be a boolean", context={"enabled": enabled})

        rate = payload.get("fireRate", payload.get("errorRate"))
        if rate is not None and (isinstance(rate, bool) or not isinstance(rate, (int, float))):
            raise InvalidConfigPatchError("'fireRate' must be a number", context={"fireRate": rate})

        raw_kinds = payload.get("enabledKinds") or {}
        if not isinstance(raw_kinds, Mapping):
            raise InvalidConfigPatchError("'enabledKinds' must be an object")
        kinds: dict[FaultKind, bool] = {}
        known = {kind.value for kind in FaultKind}
        for key, flag in raw_kinds.items():
            if key not in known:
                continue
            if not isinstance(flag, bool):
                raise InvalidConfigPatchError(
                    f"enabledKinds.{key} must be a boolean", context={"kind": key}
                )
            kinds[FaultKind(key)] = flag

        return cls(
            enabled=enabled,
            fire_rate=None if rate is None else float(rate),
            enabled_kinds=kinds,
        )


class FaultConfigStore:
    """Single process-wide chaos configuration.

    Writers build a new frozen :class:`FaultConfig` under a lock and swap the
    reference; readers take the current reference, so a reader sees either the
    old or the new snapshot in full.
    """

    def __init__(self, initial: FaultConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = initial or FaultConfig()

    def get(self) -> FaultConfig:
        return self._snapshot

    def merge(self, patch: FaultConfigPatch | Mapping[str, Any]) -> FaultConfig:
        if not isinstance(patch, FaultConfigPatch):
            patch = FaultConfigPatch.from_wire(patch)
        with self._lock:
            updated = self._snapshot.apply(patch)
            self._snapshot = updated
        logger.info(
            "busybox.state_updated",
            enabled=updated.enabled,
            fire_rate=updated.fire_rate,
            fire_rate_pct=f"{round(updated.fire_rate * 100)}%",
        )
        return updated


__all__ = [
    "DEFAULT_FIRE_RATE",
    "FaultConfig",
    "FaultConfigPatch",
    "FaultConfigStore",
    "InvalidConfigPatchError",
    "clamp_rate",
]

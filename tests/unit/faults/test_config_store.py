"""Unit tests for FaultConfig, FaultConfigPatch and FaultConfigStore."""
from __future__ import annotations

import asyncio
import dataclasses
import threading

import pytest

from mp_chaos.faults import (
    FaultConfig,
    FaultConfigPatch,
    FaultConfigStore,
    FaultKind,
    InvalidConfigPatchError,
    clamp_rate,
)


# ---------------------------------------------------------------------------
# clamp_rate / FaultConfig
# ---------------------------------------------------------------------------


class TestFaultConfig:
    def test_defaults(self) -> None:
        cfg = FaultConfig()
        assert cfg.enabled is False
        assert cfg.fire_rate == pytest.approx(0.3)
        assert all(cfg.is_kind_enabled(k) for k in FaultKind)

    @pytest.mark.parametrize(("raw", "clamped"), [(1.5, 1.0), (-0.2, 0.0), (0.42, 0.42), (float("nan"), 0.0)])
    def test_clamp_rate(self, raw: float, clamped: float) -> None:
        assert clamp_rate(raw) == pytest.approx(clamped)

    def test_constructor_clamps(self) -> None:
        assert FaultConfig(fire_rate=7.0).fire_rate == 1.0

    def test_snapshot_is_frozen(self) -> None:
        cfg = FaultConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.enabled = True  # type: ignore[misc]
        with pytest.raises(TypeError):
            cfg.enabled_kinds[FaultKind.INTERNAL] = False  # type: ignore[index]

    def test_to_wire(self) -> None:
        wire = FaultConfig(enabled=True, fire_rate=0.5).to_wire()
        assert wire["enabled"] is True
        assert wire["fireRate"] == 0.5
        assert wire["enabledKinds"]["internal"] is True
        assert len(wire["enabledKinds"]) == len(FaultKind)


# ---------------------------------------------------------------------------
# FaultConfigPatch.from_wire
# ---------------------------------------------------------------------------


class TestFaultConfigPatch:
    def test_partial_body(self) -> None:
        patch = FaultConfigPatch.from_wire({"enabled": True})
        assert patch.enabled is True
        assert patch.fire_rate is None
        assert patch.enabled_kinds == {}

    def test_error_rate_alias(self) -> None:
        assert FaultConfigPatch.from_wire({"errorRate": 0.7}).fire_rate == 0.7

    def test_unknown_kinds_ignored(self) -> None:
        patch = FaultConfigPatch.from_wire({"enabledKinds": {"internal": False, "meteor": True}})
        assert patch.enabled_kinds == {FaultKind.INTERNAL: False}

    @pytest.mark.parametrize(
        "body",
        [
            [1, 2],
            {"enabled": "yes"},
            {"fireRate": "high"},
            {"fireRate": True},
            {"enabledKinds": ["internal"]},
            {"enabledKinds": {"internal": 1}},
        ],
    )
    def test_rejects_wrong_types(self, body: object) -> None:
        with pytest.raises(InvalidConfigPatchError) as exc_info:
            FaultConfigPatch.from_wire(body)
        assert exc_info.value.status_code == 400


# ---------------------------------------------------------------------------
# FaultConfigStore
# ---------------------------------------------------------------------------


class TestFaultConfigStore:
    def test_merge_clamps_high(self) -> None:
        store = FaultConfigStore()
        assert store.merge({"fireRate": 1.5}).fire_rate == 1.0
        assert store.get().fire_rate == 1.0

    def test_merge_clamps_low(self) -> None:
        store = FaultConfigStore()
        store.merge({"fireRate": -0.2})
        assert store.get().fire_rate == 0.0

    def test_merge_keeps_missing_fields(self) -> None:
        store = FaultConfigStore(FaultConfig(enabled=True, fire_rate=0.9))
        store.merge({"enabledKinds": {"timeout": False}})
        cfg = store.get()
        assert cfg.enabled is True
        assert cfg.fire_rate == 0.9
        assert cfg.is_kind_enabled(FaultKind.TIMEOUT) is False
        assert cfg.is_kind_enabled(FaultKind.INTERNAL) is True

    def test_merge_accepts_patch_object(self) -> None:
        store = FaultConfigStore()
        store.merge(FaultConfigPatch(enabled=True))
        assert store.get().enabled is True

    def test_invalid_merge_leaves_state_untouched(self) -> None:
        store = FaultConfigStore()
        before = store.get()
        with pytest.raises(InvalidConfigPatchError):
            store.merge({"enabled": "true"})
        assert store.get() is before

    def test_previous_snapshot_not_mutated(self) -> None:
        store = FaultConfigStore()
        old = store.get()
        store.merge({"enabled": True, "fireRate": 1.0})
        assert old.enabled is False
        assert old.fire_rate == pytest.approx(0.3)

    def test_concurrent_tasks_never_see_torn_config(self) -> None:
        store = FaultConfigStore(FaultConfig(enabled=False, fire_rate=0.1))
        old = (False, 0.1)
        new = (True, 0.9)
        observed: set[tuple[bool, float]] = set()

        async def writer() -> None:
            for _ in range(200):
                store.merge({"enabled": True, "fireRate": 0.9})
                await asyncio.sleep(0)
                store.merge({"enabled": False, "fireRate": 0.1})
                await asyncio.sleep(0)

        async def reader() -> None:
            for _ in range(400):
                cfg = store.get()
                observed.add((cfg.enabled, cfg.fire_rate))
                await asyncio.sleep(0)

        async def main() -> None:
            await asyncio.gather(writer(), reader(), reader())

        asyncio.run(main())
        assert observed <= {old, new}

    def test_concurrent_threads_never_see_torn_config(self) -> None:
        store = FaultConfigStore(FaultConfig(enabled=False, fire_rate=0.1))
        torn: list[tuple[bool, float]] = []
        stop = threading.Event()

        def writer() -> None:
            for i in range(500):
                if i % 2:
                    store.merge({"enabled": True, "fireRate": 0.9})
                else:
                    store.merge({"enabled": False, "fireRate": 0.1})
            stop.set()

        def reader() -> None:
            while not stop.is_set():
                cfg = store.get()
                if (cfg.enabled, cfg.fire_rate) not in {(False, 0.1), (True, 0.9)}:
                    torn.append((cfg.enabled, cfg.fire_rate))

        threads = [threading.Thread(target=writer), threading.Thread(target=reader), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert torn == []

"""Unit tests for SpanModel, SimSpan and Trace."""
from __future__ import annotations

import asyncio
import gc
import random

import pytest

from mp_chaos.faults import FaultConfigStore, FaultDecisionEngine, FaultKind
from mp_chaos.kernel.errors import NotFoundError, SpanStateError, ValidationError
from mp_chaos.observability.correlation import CorrelationContext, RequestContext
from mp_chaos.observability.tracing import (
    MA,
    InMemorySpanExporter,
    ServiceTag,
    SimSpan,
    SpanExporter,
    SpanKind,
    SpanModel,
    SpanStatus,
    Trace,
    error_span_name,
)
from mp_chaos.testing import FakeClock, RecordingSleeper


def make_model(*exporters: SpanExporter) -> tuple[SpanModel, RecordingSleeper]:
    sleeper = RecordingSleeper()
    model = SpanModel(clock=FakeClock(), rng=random.Random(42), sleeper=sleeper, exporters=exporters)
    return model, sleeper


def injected(kind: FaultKind) -> Exception:
    return FaultDecisionEngine(FaultConfigStore()).build_fault(kind, {"route": "/x"})


# ---------------------------------------------------------------------------
# Primitive operations
# ---------------------------------------------------------------------------


class TestStartAndEnd:
    def test_root_starts_new_trace(self) -> None:
        model, _ = make_model()
        a = model.start_span("marketplace.a", ServiceTag.API_GATEWAY)
        b = model.start_span("marketplace.b", ServiceTag.API_GATEWAY)
        assert a.is_root and b.is_root
        assert a.trace_id != b.trace_id
        assert len(a.trace_id) == 32
        assert len(a.span_id) == 16

    def test_child_joins_parent_trace(self) -> None:
        model, _ = make_model()
        root = model.start_span("marketplace.root", ServiceTag.API_GATEWAY)
        child = model.start_span("marketplace.child", ServiceTag.MONGODB, parent=root)
        assert child.trace is root.trace
        assert child.parent_id == root.span_id
        assert root.trace.children(root) == [child]

    def test_service_name_attribute(self) -> None:
        model, _ = make_model()
        span = model.start_span("marketplace.lookup", ServiceTag.MONGODB)
        assert span.attributes[MA.SERVICE_NAME] == "opensea-mongodb"
        model.set_service(span, ServiceTag.CHAINLINK)
        assert span.service_tag == "chainlink-oracle"
        assert span.attributes[MA.SERVICE_NAME] == "chainlink-oracle"

    def test_end_twice_raises(self) -> None:
        model, _ = make_model()
        span = model.start_span("marketplace.a", ServiceTag.API_GATEWAY)
        model.end(span, SpanStatus.OK)
        with pytest.raises(SpanStateError):
            model.end(span, SpanStatus.OK)

    def test_end_requires_terminal_status(self) -> None:
        model, _ = make_model()
        span = model.start_span("marketplace.a", ServiceTag.API_GATEWAY)
        with pytest.raises(SpanStateError):
            model.end(span, SpanStatus.UNSET)

    def test_error_status_cannot_become_ok(self) -> None:
        model, _ = make_model()
        span = model.start_span("marketplace.a", ServiceTag.API_GATEWAY)
        span.mark_error(ValueError("boom"))
        with pytest.raises(SpanStateError):
            model.end(span, SpanStatus.OK)

    def test_cannot_end_parent_with_open_child(self) -> None:
        model, _ = make_model()
        root = model.start_span("marketplace.root", ServiceTag.API_GATEWAY)
        model.start_span("marketplace.child", ServiceTag.API_GATEWAY, parent=root)
        with pytest.raises(SpanStateError):
            model.end(root, SpanStatus.OK)

    def test_ended_span_is_immutable(self) -> None:
        model, _ = make_model()
        span = model.start_span("marketplace.a", ServiceTag.API_GATEWAY)
        model.end(span, SpanStatus.OK)
        with pytest.raises(SpanStateError):
            span.set_attribute("k", "v")
        with pytest.raises(SpanStateError):
            model.start_span("marketplace.late", ServiceTag.API_GATEWAY, parent=span)

    def test_end_error_records_exception(self) -> None:
        model, _ = make_model()
        span = model.start_span("marketplace.a", ServiceTag.API_GATEWAY)
        model.end(span, SpanStatus.ERROR, NotFoundError("missing"))
        assert span.status is SpanStatus.ERROR
        assert span.error is not None
        assert span.error.code == "NOT_FOUND"
        assert span.error.status_code == 404

    def test_close_dangling(self) -> None:
        exporter = InMemorySpanExporter()
        model, _ = make_model(exporter)
        root = model.start_span("marketplace.root", ServiceTag.API_GATEWAY)
        child = model.start_span("marketplace.child", ServiceTag.API_GATEWAY, parent=root)
        grandchild = model.start_span("marketplace.grandchild", ServiceTag.API_GATEWAY, parent=child)
        assert root.trace.open_spans() == [root, child, grandchild]
        closed = model.close_dangling(root, "request aborted")
        assert root.trace.open_spans() == [root]
        assert closed == [grandchild, child]
        assert child.status is SpanStatus.ERROR
        assert child.status_message == "request aborted"
        model.end(root, SpanStatus.OK)
        assert exporter.traces == [root.trace]
        assert root.trace.is_well_formed()


# ---------------------------------------------------------------------------
# Composite operations
# ---------------------------------------------------------------------------


class TestRunWithSpan:
    def _run(self, work_fails: bool) -> tuple[Trace, SimSpan]:
        exporter = InMemorySpanExporter()
        model, _ = make_model(exporter)
        holder: dict[str, SimSpan] = {}

        async def work(span: SimSpan) -> str:
            holder["work"] = span
            if work_fails:
                raise injected(FaultKind.SERVICE_UNAVAILABLE)
            return "done"

        async def main() -> None:
            async with model.trace("marketplace.root", ServiceTag.API_GATEWAY) as root:
                try:
                    await model.run_with_span("marketplace.work", ServiceTag.DATA_SERVICE, work, parent=root)
                except Exception:
                    root.mark_error(ValueError("handled"))

        asyncio.run(main())
        (trace,) = exporter.traces
        return trace, holder["work"]

    def test_success_path(self) -> None:
        trace, work = self._run(work_fails=False)
        assert len(trace) == 2
        assert work.status is SpanStatus.OK
        assert trace.root.kind is SpanKind.SERVER
        assert trace.is_well_formed()

    def test_failure_adds_exactly_one_error_span(self) -> None:
        ok_trace, _ = self._run(work_fails=False)
        failed_trace, work = self._run(work_fails=True)
        assert len(failed_trace) == len(ok_trace) + 1
        assert work.status is SpanStatus.ERROR
        assert work.error is not None
        assert work.error.code == "BUSYBOX_SERVICE_UNAVAILABLE"

    def test_error_span_shape(self) -> None:
        trace, work = self._run(work_fails=True)
        (error_span,) = trace.find("marketplace.error.service_unavailable")
        assert error_span.parent_id == work.span_id
        assert error_span.service_tag == work.service_tag
        assert error_span.status is SpanStatus.ERROR
        assert error_span.attributes[MA.ERROR] is True
        assert error_span.attributes[MA.ERROR_CODE] == "BUSYBOX_SERVICE_UNAVAILABLE"
        assert error_span.attributes[MA.ERROR_STATUS_CODE] == 503
        assert error_span.attributes[MA.ERROR_ORIGIN_SPAN] == "marketplace.work"
        assert error_span.attributes[MA.BUSYBOX_FAULT_TYPE] == "service_unavailable"
        assert error_span.attributes[MA.BUSYBOX_INJECTED] is True
        assert 3 <= error_span.attributes[MA.ERROR_PROCESSING_MS] <= 15

    def test_trace_complete_after_root_ends(self) -> None:
        trace, _ = self._run(work_fails=True)
        assert all(s.is_ended and s.status is not SpanStatus.UNSET for s in trace)
        assert trace.is_well_formed()

    def test_nested_failure_records_one_error_span(self) -> None:
        exporter = InMemorySpanExporter()
        model, sleeper = make_model(exporter)

        async def main() -> None:
            async with model.trace("marketplace.root", ServiceTag.API_GATEWAY) as root:
                async with model.span("marketplace.outer", ServiceTag.DATA_SERVICE, parent=root) as outer:
                    async with model.span("marketplace.inner", ServiceTag.PRICE_ENGINE, parent=outer):
                        raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            asyncio.run(main())

        (trace,) = exporter.traces
        error_spans = [s for s in trace if s.name.startswith("marketplace.error.")]
        assert [s.name for s in error_spans] == ["marketplace.error.validation"]
        assert trace.get(error_spans[0].parent_id).name == "marketplace.inner"
        assert {s.name: s.status for s in trace if s not in error_spans} == {
            "marketplace.root": SpanStatus.ERROR,
            "marketplace.outer": SpanStatus.ERROR,
            "marketplace.inner": SpanStatus.ERROR,
        }
        assert len(sleeper.calls) == 1

    def test_each_handled_failure_gets_its_own_error_span(self) -> None:
        exporter = InMemorySpanExporter()
        model, _ = make_model(exporter)

        async def failing(span: SimSpan) -> None:
            raise ValidationError(f"step {span.name} rejected")

        async def main() -> None:
            async with model.trace("marketplace.root", ServiceTag.API_GATEWAY) as root:
                for i in range(5):
                    try:
                        await model.run_with_span(f"marketplace.step_{i}", ServiceTag.DATA_SERVICE, failing, parent=root)
                    except ValidationError:
                        gc.collect()

        asyncio.run(main())
        (trace,) = exporter.traces
        error_spans = trace.find("marketplace.error.validation")
        assert len(error_spans) == 5
        assert sorted(trace.get(s.parent_id).name for s in error_spans) == [f"marketplace.step_{i}" for i in range(5)]
        assert len(trace) == 1 + 5 + 5

    def test_trace_id_bound_to_request_context(self) -> None:
        model, _ = make_model()
        seen: dict[str, str | None] = {}

        async def main() -> None:
            CorrelationContext.set(RequestContext(correlation_id="req_trace"))
            async with model.trace("marketplace.root", ServiceTag.API_GATEWAY) as root:
                ctx = CorrelationContext.get()
                seen["bound"] = ctx.trace_id if ctx else None
                seen["root"] = root.trace_id

        asyncio.run(main())
        assert seen["bound"] == seen["root"]

    def test_trace_without_request_context(self) -> None:
        model, _ = make_model()

        async def main() -> None:
            CorrelationContext.clear()
            async with model.trace("marketplace.root", ServiceTag.API_GATEWAY):
                assert CorrelationContext.get() is None

        asyncio.run(main())

    def test_cancellation_closes_spans_without_error_span(self) -> None:
        exporter = InMemorySpanExporter()
        model, _ = make_model(exporter)

        async def main() -> None:
            started = asyncio.Event()

            async def request() -> None:
                async with model.trace("marketplace.root", ServiceTag.API_GATEWAY) as root:
                    async with model.span("marketplace.slow", ServiceTag.UNISWAP, parent=root):
                        started.set()
                        await asyncio.sleep(10)

            task = asyncio.create_task(request())
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(main())
        (trace,) = exporter.traces
        assert len(trace) == 2
        assert all(s.status is SpanStatus.ERROR for s in trace)
        assert trace.is_well_formed()


# ---------------------------------------------------------------------------
# Error span naming / exporters
# ---------------------------------------------------------------------------


class TestErrorSpanName:
    @pytest.mark.parametrize(
        ("exc", "name"),
        [
            (ValidationError("x"), "marketplace.error.validation"),
            (NotFoundError("x"), "marketplace.error.not_found"),
            (asyncio.TimeoutError(), "marketplace.error.timeout"),
            (RuntimeError("x"), "marketplace.error.unknown"),
        ],
    )
    def test_genuine_errors(self, exc: Exception, name: str) -> None:
        assert error_span_name(exc) == name

    def test_injected_faults_use_kind(self) -> None:
        assert error_span_name(injected(FaultKind.EDGE_TIMEOUT)) == "marketplace.error.edge_timeout"


class TestExporters:
    def test_broken_exporter_does_not_fail_request(self) -> None:
        class Broken(SpanExporter):
            def export(self, trace: Trace) -> None:
                raise RuntimeError("sink down")

        good = InMemorySpanExporter()
        model, _ = make_model(Broken(), good)
        span = model.start_span("marketplace.a", ServiceTag.API_GATEWAY)
        model.end(span, SpanStatus.OK)
        assert len(good.traces) == 1

    def test_in_memory_exporter_bounded(self) -> None:
        exporter = InMemorySpanExporter(max_traces=3)
        model, _ = make_model(exporter)
        for i in range(5):
            model.end(model.start_span(f"marketplace.{i}", ServiceTag.API_GATEWAY), SpanStatus.OK)
        assert [t.root.name for t in exporter.traces] == ["marketplace.2", "marketplace.3", "marketplace.4"]
        exporter.clear()
        assert exporter.traces == []

    def test_only_root_end_exports(self) -> None:
        exporter = InMemorySpanExporter()
        model, _ = make_model(exporter)
        root = model.start_span("marketplace.root", ServiceTag.API_GATEWAY)
        child = model.start_span("marketplace.child", ServiceTag.API_GATEWAY, parent=root)
        model.end(child, SpanStatus.OK)
        assert exporter.traces == []
        model.end(root, SpanStatus.OK)
        assert exporter.traces[0].to_dict()["spans"][1]["parentId"] == root.span_id
        assert exporter.traces[0].to_dict()["spans"][1]["durationMs"] == 1.0

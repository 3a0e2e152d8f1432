"""Observability – correlation context and request identifiers."""
from mp_chaos.observability.correlation.context import CorrelationContext, RequestContext
from mp_chaos.observability.correlation.ids import RequestIdGenerator, random_hex, to_base36

__all__ = ["CorrelationContext", "RequestContext", "RequestIdGenerator", "random_hex", "to_base36"]

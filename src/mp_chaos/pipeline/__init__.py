"""Pipeline – layered fault injection: edge, gateway and subfunction tiers."""
from mp_chaos.pipeline.edge import EdgeContext, EdgeLayer, EdgeOutcome, EdgeRequest, default_edge_rules
from mp_chaos.pipeline.gateway import DEFAULT_GATEWAY_KINDS, GatewayLayer
from mp_chaos.pipeline.rules import InjectionRule, require_tier
from mp_chaos.pipeline.subfunction import SubfunctionLayer

__all__ = [
    "DEFAULT_GATEWAY_KINDS",
    "EdgeContext",
    "EdgeLayer",
    "EdgeOutcome",
    "EdgeRequest",
    "GatewayLayer",
    "InjectionRule",
    "SubfunctionLayer",
    "default_edge_rules",
    "require_tier",
]

"""
mp_chaos – synthetic fault-injection and trace simulation engine.

Import path convention::

    from mp_chaos.faults import FaultConfigStore, FaultDecisionEngine, FaultKind
    from mp_chaos.pipeline import EdgeLayer, GatewayLayer, SubfunctionLayer
    from mp_chaos.observability.tracing import SpanModel, ServiceTag
    from mp_chaos.adapters.fastapi import create_app
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

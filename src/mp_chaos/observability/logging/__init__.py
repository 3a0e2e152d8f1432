"""Observability – structured logging helpers."""
from mp_chaos.observability.logging.processors import CorrelationProcessor, get_logger
from mp_chaos.observability.logging.factory import JsonLoggerFactory

__all__ = ["CorrelationProcessor", "JsonLoggerFactory", "get_logger"]

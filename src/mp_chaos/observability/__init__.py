"""Observability – correlation, logging, tracing."""

"""Observability – synthetic upstream service identities.

A span's service tag is a pure annotation: it decides which box a trace
viewer draws the span in, never which code runs.
"""
from __future__ import annotations

from enum import Enum


class ServiceTag(str, Enum):
    EDGE = "vercel-edge-network"
    API_GATEWAY = "opensea-api-gateway"
    DATA_SERVICE = "opensea-data-service"
    ENRICHMENT = "opensea-enrichment"
    SEARCH_ENGINE = "opensea-search-engine"
    PRICE_ENGINE = "opensea-price-engine"
    MONGODB = "opensea-mongodb"
    CHAINLINK = "chainlink-oracle"
    UNISWAP = "uniswap-router"
    GAS_ORACLE = "gas-oracle"
    ADMIN = "opensea-admin"


__all__ = ["ServiceTag"]

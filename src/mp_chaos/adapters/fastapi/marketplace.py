"""FastAPI adapter – demo marketplace routes exercising every injection tier.

``GET /api/trending``
    marketplace.trending.aggregate
      ├── marketplace.infra.latency_simulation
      └── marketplace.trending.tokens
            └── marketplace.price.sparkline  (one per token, crash point)

``POST /api/tokens/{chain}/{address}/swap``
    marketplace.swap.quote
      ├── marketplace.infra.latency_simulation
      ├── marketplace.swap.validate_input
      ├── marketplace.swap.token_lookup
      ├── marketplace.swap.price_resolution
      ├── marketplace.swap.impact_calculation
      └── marketplace.swap.quote_assembly
"""
import dataclasses
import json
from typing import Any

from mp_chaos.adapters.fastapi.exception_mapper import RouteErrorHandler, _require_fastapi
from mp_chaos.faults.taxonomy import FaultKind
from mp_chaos.kernel.errors import NotFoundError, UnprocessableError, ValidationError
from mp_chaos.observability.logging import get_logger
from mp_chaos.observability.tracing import MA, ServiceTag, SimSpan
from mp_chaos.runtime import ChaosRuntime

logger = get_logger(__name__)

TRENDING_ROUTE = "/api/trending"
SWAP_ROUTE = "/api/tokens/{chain}/{address}/swap"
TRENDING_KINDS = (FaultKind.INTERNAL, FaultKind.SERVICE_UNAVAILABLE, FaultKind.RATE_LIMITED)
PRICE_IMPACT_LIMIT_PCT = 25.0
SWAP_FEE_RATE = 0.003
QUOTE_PRICES_USD = {"SOL": 195.42, "ETH": 1879.47}


@dataclasses.dataclass(frozen=True)
class Token:
    chain: str
    address: str
    symbol: str
    price: float
    change_1d: float
    volume_1d: float
    price_history: tuple[float, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain": self.chain,
            "address": self.address,
            "symbol": self.symbol,
            "price": self.price,
            "change1d": self.change_1d,
            "volume1d": self.volume_1d,
        }


def _history(start: float, step: float, points: int = 48) -> tuple[float, ...]:
    return tuple(round(start + step * i, 6) for i in range(points))


CATALOG: tuple[Token, ...] = (
    Token("solana", "So11111111111111111111111111111111111111112", "SOL", 195.42, 4.1, 2.4e9, _history(188.0, 0.16)),
    Token("ethereum", "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2", "WETH", 1879.47, -1.8, 1.1e9, _history(1910.0, -0.64)),
    Token("solana", "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", "BONK", 0.0000231, 18.7, 3.2e8, _history(0.0000195, 7.5e-8)),
    Token("ethereum", "0x6982508145454ce325ddbe47a25d4ec3d2311933", "PEPE", 0.0000089, -9.4, 5.6e8, _history(0.0000098, -1.9e-8)),
    Token("base", "0x532f27101965dd16442e59d40670faf5ebb142e4", "BRETT", 0.071, 12.2, 4.0e7, _history(0.063, 0.00017)),
    Token("solana", "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm", "WIF", 1.92, 6.3, 2.1e8, _history(1.81, 0.0023)),
    Token("base", "0x4ed4e862860bed51a9570b96d89af5e1b0efefed", "DEGEN", 0.0061, -3.1, 9.0e6, _history(0.0063, -0.000004)),
    Token("ethereum", "0x1f9840a85d5af5b3bf5d82a4e8c1a5b1f1c1a1c1", "UNI", 7.84, 0.9, 1.6e8, _history(7.77, 0.0015)),
)


def find_token(chain: str, address: str) -> Token | None:
    return next((t for t in CATALOG if t.chain == chain and t.address.lower() == address.lower()), None)


def MarketplaceRouter(runtime: ChaosRuntime, tags: list[str] | None = None) -> Any:
    """Return the demo routes wired to *runtime*'s gateway, latency and sub-function tiers."""
    _require_fastapi()
    from fastapi import APIRouter, Request  # type: ignore[import-untyped]

    router = APIRouter(tags=tags or ["marketplace"])
    model = runtime.model
    errors = RouteErrorHandler(model, runtime.request_ids)

    @runtime.subfunction.crash_point("get_sparkline_data")
    def sparkline_points(history: tuple[float, ...], points: int) -> list[float]:
        return list(history[-points:])

    async def sparkline(parent: SimSpan, token: Token, points: int = 20) -> list[float]:
        async with model.span(
            "marketplace.price.sparkline",
            ServiceTag.PRICE_ENGINE,
            {MA.SPARKLINE_POINTS_REQUESTED: points, MA.TOKEN_SYMBOL: token.symbol},
            parent=parent,
        ) as span:
            result = sparkline_points(token.price_history, points)
            span.set_attribute(MA.SPARKLINE_POINTS_RETURNED, len(result))
            return result

    @router.get(TRENDING_ROUTE)
    async def trending() -> Any:
        async with model.trace(
            "marketplace.trending.aggregate",
            ServiceTag.API_GATEWAY,
            {MA.HTTP_METHOD: "GET", MA.HTTP_ROUTE: TRENDING_ROUTE},
        ) as root:
            try:
                runtime.gateway.check(TRENDING_ROUTE, span=root, kinds=TRENDING_KINDS)
                await runtime.latency.delay(30, 80, parent=root, operation="trending.aggregate")

                async def top_tokens(span: SimSpan) -> list[dict[str, Any]]:
                    ranked = sorted(CATALOG, key=lambda t: abs(t.change_1d), reverse=True)[:6]
                    items = [{**t.to_dict(), "sparkline": await sparkline(span, t)} for t in ranked]
                    span.set_attribute(MA.RESPONSE_ITEMS, len(items))
                    return items

                tokens = await model.run_with_span(
                    "marketplace.trending.tokens", ServiceTag.DATA_SERVICE, top_tokens, parent=root
                )
                root.set_attribute(MA.RESPONSE_ITEMS, len(tokens))
                root.set_attribute(MA.HTTP_STATUS_CODE, 200)
                return {"trendingTokens": tokens}
            except Exception as exc:
                return await errors.handle(exc, root)

    @router.post(SWAP_ROUTE)
    async def swap_quote(chain: str, address: str, request: Request) -> Any:
        async with model.trace(
            "marketplace.swap.quote",
            ServiceTag.API_GATEWAY,
            {
                MA.HTTP_METHOD: "POST",
                MA.HTTP_ROUTE: SWAP_ROUTE,
                MA.CHAIN: chain,
                MA.TOKEN_ADDRESS: address,
            },
        ) as root:
            log = logger.bind(chain=chain, address=address)
            try:
                runtime.gateway.check(SWAP_ROUTE, span=root, chain=chain, address=address)
                await runtime.latency.delay(80, 200, parent=root, operation="swap.quote")

                async def validate_input(span: SimSpan) -> tuple[str, str, float]:
                    try:
                        body = json.loads(await request.body())
                    except ValueError as exc:
                        raise ValidationError(
                            "Request body must be valid JSON",
                            code="INVALID_REQUEST_BODY",
                            context={"contentType": request.headers.get("content-type")},
                        ) from exc
                    if not isinstance(body, dict):
                        body = {}
                    from_token, to_token, amount = body.get("fromToken"), body.get("toToken"), body.get("amount")
                    if (
                        not from_token
                        or not to_token
                        or isinstance(amount, bool)
                        or not isinstance(amount, (int, float))
                        or amount <= 0
                    ):
                        raise ValidationError(
                            "Missing required fields: fromToken, toToken, amount (> 0)",
                            code="SWAP_VALIDATION_FAILED",
                            context={"fromToken": from_token, "toToken": to_token, "amount": amount},
                        )
                    span.set_attribute(MA.SWAP_FROM_TOKEN, from_token)
                    span.set_attribute(MA.SWAP_FROM_AMOUNT, amount)
                    return str(from_token), str(to_token), float(amount)

                from_token, _, amount = await model.run_with_span(
                    "marketplace.swap.validate_input", ServiceTag.API_GATEWAY, validate_input, parent=root
                )

                async def token_lookup(span: SimSpan) -> Token | None:
                    found = find_token(chain, address)
                    if found is not None:
                        span.set_attribute(MA.TOKEN_SYMBOL, found.symbol)
                        span.set_attribute(MA.TOKEN_PRICE_USD, found.price)
                    return found

                token = await model.run_with_span(
                    "marketplace.swap.token_lookup", ServiceTag.MONGODB, token_lookup, parent=root
                )
                if token is None:
                    raise NotFoundError(
                        f"Token not found on {chain} at {address}",
                        code="TOKEN_NOT_FOUND",
                        context={"chain": chain, "address": address},
                    )

                runtime.gateway.check_unprocessable(SWAP_ROUTE, token=token.symbol)

                async def price_resolution(span: SimSpan) -> float:
                    usd = amount * QUOTE_PRICES_USD.get(from_token, 1.0)
                    span.set_attribute(MA.TOKEN_PRICE_USD, token.price)
                    return usd

                amount_usd = await model.run_with_span(
                    "marketplace.swap.price_resolution", ServiceTag.CHAINLINK, price_resolution, parent=root
                )

                async def impact_calculation(span: SimSpan) -> tuple[float, float, float]:
                    impact = min(amount_usd / (token.volume_1d or 1) * 100, 50.0)
                    if impact > PRICE_IMPACT_LIMIT_PCT:
                        raise UnprocessableError(
                            f"Price impact of {impact:.2f}% exceeds {PRICE_IMPACT_LIMIT_PCT:.0f}% safety threshold",
                            code="PRICE_IMPACT_TOO_HIGH",
                            context={"priceImpact": impact, "threshold": PRICE_IMPACT_LIMIT_PCT},
                        )
                    fee = amount_usd * SWAP_FEE_RATE
                    to_amount = (amount_usd - fee) / token.price * (1 - impact / 100)
                    span.set_attribute(MA.SWAP_PRICE_IMPACT_PCT, impact)
                    span.set_attribute(MA.SWAP_TO_AMOUNT, to_amount)
                    return impact, fee, to_amount

                impact, fee, to_amount = await model.run_with_span(
                    "marketplace.swap.impact_calculation", ServiceTag.UNISWAP, impact_calculation, parent=root
                )

                async def quote_assembly(span: SimSpan) -> dict[str, Any]:
                    gas = 0.001 + runtime.engine.rng.random() * 0.005
                    route = f"{from_token} → {token.symbol}"
                    span.set_attribute(MA.SWAP_TO_AMOUNT, to_amount)
                    return {
                        "fromToken": from_token,
                        "toToken": token.symbol,
                        "fromAmount": amount,
                        "toAmount": to_amount,
                        "priceImpact": impact,
                        "fee": fee,
                        "feeCurrency": "USD",
                        "estimatedGas": gas,
                        "route": route,
                    }

                quote = await model.run_with_span(
                    "marketplace.swap.quote_assembly", ServiceTag.GAS_ORACLE, quote_assembly, parent=root
                )
                root.set_attribute(MA.SWAP_PRICE_IMPACT_PCT, impact)
                root.set_attribute(MA.SWAP_TO_AMOUNT, to_amount)
                root.set_attribute(MA.HTTP_STATUS_CODE, 200)
                root.set_attribute(MA.RESPONSE_ITEMS, 1)
                log.info("swap_quote_generated", pair=f"{from_token}/{token.symbol}", price_impact=round(impact, 4))
                return quote
            except Exception as exc:
                return await errors.handle(exc, root)

    return router


__all__ = ["CATALOG", "MarketplaceRouter", "Token", "find_token"]

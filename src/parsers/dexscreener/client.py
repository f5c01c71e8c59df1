from decimal import Decimal, InvalidOperation

import httpx
from loguru import logger
from pydantic import ValidationError

from src.parsers.dexscreener.models import DexScreenerTokenResponse
from src.parsers.rate_limiter import RateLimiter

BASE_URL = "https://api.dexscreener.com"


class DexScreenerClient:
    """Async REST client for DexScreener public API (no auth required)."""

    def __init__(self, rate_limiter: RateLimiter | None = None, max_rps: float = 4.0) -> None:
        self._client = httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=10.0,
            headers={"Accept": "application/json"},
        )
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)

    async def get_usd_price(self, token_address: str) -> Decimal | None:
        """USD price from the first listed pair, or None if unavailable.

        One GET, no retry and no caching; any failure is logged and yields None.
        """
        await self._rate_limiter.acquire()
        try:
            response = await self._client.get(f"/latest/dex/tokens/{token_address}")
            response.raise_for_status()
            data = DexScreenerTokenResponse.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.debug(f"[PRICE] DexScreener lookup failed for {token_address[:12]}: {e}")
            return None

        if not data.pairs:
            logger.debug(f"[PRICE] No pairs found for {token_address[:12]}")
            return None

        price_usd = data.pairs[0].priceUsd
        if not price_usd:
            return None
        try:
            price = Decimal(price_usd)
        except InvalidOperation:
            logger.debug(f"[PRICE] Unparsable priceUsd {price_usd!r} for {token_address[:12]}")
            return None
        if not price.is_finite() or price <= 0:
            return None
        return price

    async def close(self) -> None:
        await self._client.aclose()

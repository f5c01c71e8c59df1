from decimal import Decimal

from pydantic import BaseModel


class DexScreenerToken(BaseModel):
    address: str
    name: str | None = None
    symbol: str | None = None

    model_config = {"extra": "ignore"}


class DexScreenerLiquidity(BaseModel):
    usd: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerPair(BaseModel):
    chainId: str = ""
    dexId: str = ""
    pairAddress: str = ""
    baseToken: DexScreenerToken | None = None
    quoteToken: DexScreenerToken | None = None
    priceUsd: str | None = None
    liquidity: DexScreenerLiquidity | None = None

    model_config = {"extra": "ignore"}


class DexScreenerTokenResponse(BaseModel):
    """Response of /latest/dex/tokens/{address}."""

    schemaVersion: str | None = None
    pairs: list[DexScreenerPair] | None = None

    model_config = {"extra": "ignore"}

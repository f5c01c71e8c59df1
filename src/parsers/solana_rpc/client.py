"""Solana JSON-RPC client: getTransaction and getAccountInfo over HTTP."""

import asyncio
import base64
import binascii
from typing import Any

import httpx
from loguru import logger

from src.parsers.rate_limiter import RateLimiter
from src.parsers.solana_rpc.exceptions import SolanaRpcError, SolanaRpcRateLimitError

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]

# logsSubscribe can deliver a signature slightly before getTransaction serves it
NOT_FOUND_DELAY = 1.0


class SolanaRpcClient:
    """Async client for the subset of Solana RPC the tracker needs.

    Transport failures, HTTP errors and JSON-RPC errors raise SolanaRpcError
    once retries are spent. A missing account or transaction is None.
    """

    def __init__(
        self,
        rpc_url: str,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 10.0,
        timeout: float = 15.0,
        commitment: str = "confirmed",
    ) -> None:
        self._rpc_url = rpc_url
        self._commitment = commitment
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)
        self._client = httpx.AsyncClient(timeout=timeout)
        self._request_count = 0

    @property
    def request_count(self) -> int:
        return self._request_count

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC request, retrying 429 and timeouts."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }

        for attempt in range(MAX_RETRIES + 1):
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            await self._rate_limiter.acquire()
            self._request_count += 1
            try:
                resp = await self._client.post(self._rpc_url, json=payload)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < MAX_RETRIES:
                    logger.debug(f"[RPC] {method} {type(e).__name__}, retrying in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise SolanaRpcError(f"{method} failed: {e}") from e

            if resp.status_code == 429:
                if attempt < MAX_RETRIES:
                    logger.debug(f"[RPC] {method} 429 rate limited, retrying in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise SolanaRpcRateLimitError(f"{method} rate limited")
            if resp.status_code != 200:
                raise SolanaRpcError(f"{method} HTTP {resp.status_code}")

            try:
                data = resp.json()
            except ValueError as e:
                raise SolanaRpcError(f"{method} returned invalid JSON") from e

            if "error" in data:
                raise SolanaRpcError(f"{method} RPC error: {data['error']}")
            return data.get("result")

        raise SolanaRpcError(f"{method} retries exhausted")

    async def get_account_info(self, address: str) -> bytes | None:
        """Fetch raw account data. None if the account does not exist."""
        result = await self._call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": self._commitment}],
        )
        if not result or not result.get("value"):
            return None

        account_data = result["value"].get("data")
        if isinstance(account_data, list):
            b64_data = account_data[0] if account_data else ""
        else:
            b64_data = account_data or ""

        try:
            return base64.b64decode(b64_data)
        except (binascii.Error, ValueError) as e:
            raise SolanaRpcError(f"getAccountInfo bad base64 for {address[:12]}") from e

    async def get_transaction(
        self, signature: str, *, retries: int = 0
    ) -> dict[str, Any] | None:
        """Fetch a confirmed transaction (jsonParsed, v0 tolerant).

        A null result is re-polled ``retries`` times with doubling delay
        before giving up with None.
        """
        params = [
            signature,
            {
                "encoding": "jsonParsed",
                "commitment": self._commitment,
                "maxSupportedTransactionVersion": 0,
            },
        ]
        delay = NOT_FOUND_DELAY
        for attempt in range(retries + 1):
            result = await self._call("getTransaction", params)
            if result is not None:
                return result
            if attempt < retries:
                logger.debug(
                    f"[RPC] getTransaction {signature[:16]} not indexed yet, "
                    f"retry in {delay:.0f}s"
                )
                await asyncio.sleep(delay)
                delay *= 2
        return None

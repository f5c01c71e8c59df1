"""WebSocket client for a wallet's transactions via Solana logsSubscribe.

logsSubscribe with ``mentions: [wallet]`` delivers one notification per
transaction that references the wallet: signature + log lines. Only the
signature is forwarded; the processor fetches the full transaction.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from enum import Enum

import websockets
from loguru import logger
from websockets.asyncio.client import ClientConnection


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ACTIVE = "active"


class WalletLogsClient:
    """Single-connection logsSubscribe listener for one wallet.

    Auto-reconnects with exponential backoff and re-subscribes.
    """

    def __init__(self, ws_url: str, wallet: str, commitment: str = "confirmed") -> None:
        self._ws_url = ws_url
        self._wallet = wallet
        self._commitment = commitment
        self._ws: ClientConnection | None = None
        self._state = ConnectionState.DISCONNECTED
        self._running = False
        self._reconnect_delay = 5.0
        self._max_reconnect_delay = 60.0
        self._message_count = 0
        self._subscription_id: int | None = None

        self.on_signature: Callable[[str], Awaitable[None]] | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def message_count(self) -> int:
        return self._message_count

    async def connect(self) -> None:
        """Connect and listen. Auto-reconnects on disconnect."""
        self._running = True
        while self._running:
            try:
                self._state = ConnectionState.CONNECTING
                async with websockets.connect(
                    self._ws_url,
                    ping_interval=30,
                    ping_timeout=10,
                    close_timeout=5,
                ) as ws:
                    self._ws = ws
                    self._state = ConnectionState.CONNECTED
                    self._reconnect_delay = 5.0
                    await self._subscribe()
                    self._state = ConnectionState.ACTIVE
                    logger.info(f"[WS] Monitoring wallet: {self._wallet}")
                    await self._listen()
            except (
                websockets.ConnectionClosed,
                ConnectionError,
                OSError,
                TimeoutError,
            ) as e:
                logger.warning(f"[WS] Disconnected: {e}")
                self._state = ConnectionState.DISCONNECTED
                self._ws = None
                self._subscription_id = None
                if self._running:
                    logger.info(f"[WS] Reconnecting in {self._reconnect_delay:.0f}s...")
                    await asyncio.sleep(self._reconnect_delay)
                    self._reconnect_delay = min(
                        self._reconnect_delay * 2, self._max_reconnect_delay
                    )

    async def _subscribe(self) -> None:
        if not self._ws:
            return
        subscribe_msg = json.dumps({
            "jsonrpc": "2.0",
            "id": 1,
            "method": "logsSubscribe",
            "params": [
                {"mentions": [self._wallet]},
                {"commitment": self._commitment},
            ],
        })
        await self._ws.send(subscribe_msg)
        try:
            response = await asyncio.wait_for(self._ws.recv(), timeout=10.0)
            data = json.loads(response)
            if "result" in data:
                self._subscription_id = data["result"]
                logger.debug(f"[WS] logsSubscribe id={self._subscription_id}")
            elif "error" in data:
                logger.error(f"[WS] logsSubscribe rejected: {data['error']}")
        except (asyncio.TimeoutError, json.JSONDecodeError) as e:
            logger.warning(f"[WS] Subscribe confirmation failed: {e}")

    async def _listen(self) -> None:
        if not self._ws:
            return

        async for message in self._ws:
            self._message_count += 1
            signature = parse_logs_notification(message)
            if signature is None:
                continue
            logger.info(f"[WS] New transaction detected: {signature}")
            await self._dispatch(signature)

    async def _dispatch(self, signature: str) -> None:
        if self.on_signature is None:
            return
        try:
            await self.on_signature(signature)
        except Exception as e:
            logger.error(f"[WS] Signature callback error: {e}")

    async def stop(self) -> None:
        self._running = False
        if self._ws:
            await self._ws.close()
            self._ws = None
        self._state = ConnectionState.DISCONNECTED


def parse_logs_notification(message: str | bytes) -> str | None:
    """Extract the signature from a logsNotification message.

    Shape: {"method": "logsNotification",
            "params": {"result": {"value": {"signature": ..., "err": ..., "logs": [...]}}}}
    """
    try:
        data = json.loads(message)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict) or data.get("method") != "logsNotification":
        return None

    params = data.get("params") or {}
    value = (params.get("result") or {}).get("value") or {}
    signature = value.get("signature")
    return signature or None

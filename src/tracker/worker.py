"""Wires the wallet logs subscription to a bounded pool of processing workers."""

import asyncio

from loguru import logger

from config.settings import Settings
from src.parsers.dexscreener.client import DexScreenerClient
from src.parsers.solana_rpc.client import SolanaRpcClient
from src.parsers.solana_rpc.ws_client import WalletLogsClient
from src.tracker.balance_deltas import DuplicateMintPolicy
from src.tracker.metadata_cache import MetadataCache
from src.tracker.processor import TransactionProcessor


class SignatureQueue:
    """Bounded FIFO of signatures awaiting processing.

    Full queue drops the new signature with a warning instead of blocking
    the websocket reader.
    """

    def __init__(self, maxsize: int) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=maxsize)
        self._dropped = 0

    @property
    def dropped(self) -> int:
        return self._dropped

    def qsize(self) -> int:
        return self._queue.qsize()

    async def put(self, signature: str) -> None:
        try:
            self._queue.put_nowait(signature)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(
                f"[WORKER] Queue full ({self._queue.maxsize}), dropping {signature[:16]} "
                f"(dropped total: {self._dropped})"
            )

    async def get(self) -> str:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()


def build_processor(
    cfg: Settings,
) -> tuple[TransactionProcessor, SolanaRpcClient, DexScreenerClient | None]:
    """Create the processor and the clients it owns (caller closes them)."""
    rpc = SolanaRpcClient(
        cfg.rpc_url,
        max_rps=cfg.rpc_max_rps,
        timeout=cfg.rpc_timeout_sec,
        commitment=cfg.commitment,
    )
    price_client = (
        DexScreenerClient(max_rps=cfg.dexscreener_max_rps)
        if cfg.enable_price_lookup
        else None
    )
    processor = TransactionProcessor(
        rpc,
        cfg.target_wallet,
        cache=MetadataCache(retry_after=cfg.metadata_retry_after_sec),
        price_client=price_client,
        duplicate_mint_policy=DuplicateMintPolicy(cfg.duplicate_mint_policy),
        fetch_retries=cfg.tx_fetch_retries,
    )
    return processor, rpc, price_client


async def _tx_worker(
    worker_idx: int, queue: SignatureQueue, processor: TransactionProcessor
) -> None:
    while True:
        signature = await queue.get()
        try:
            await processor.process(signature)
        except Exception as e:
            logger.error(f"[WORKER-{worker_idx}] Unhandled error for {signature[:16]}: {e}")
        finally:
            queue.task_done()


async def run_tracker(cfg: Settings) -> None:
    """Subscribe to the wallet and process its transactions until cancelled."""
    processor, rpc, price_client = build_processor(cfg)
    ws_client = WalletLogsClient(cfg.wss_url, cfg.target_wallet, commitment=cfg.commitment)
    queue = SignatureQueue(cfg.tx_queue_size)
    ws_client.on_signature = queue.put

    tasks: list[asyncio.Task] = [
        asyncio.create_task(ws_client.connect(), name="wallet_logs_ws")
    ]
    num_workers = max(1, cfg.tx_workers)
    for worker_idx in range(num_workers):
        tasks.append(
            asyncio.create_task(
                _tx_worker(worker_idx, queue, processor), name=f"tx_worker_{worker_idx}"
            )
        )
    logger.info(f"Transaction workers started: {num_workers} parallel consumers")

    try:
        await asyncio.gather(*tasks)
    except asyncio.CancelledError:
        logger.info("Tracker tasks cancelled")
    finally:
        for task in tasks:
            task.cancel()
        await ws_client.stop()
        await rpc.close()
        if price_client:
            await price_client.close()
        logger.info(f"Tracker stopped: {processor.stats}, dropped={queue.dropped}")


async def process_signature(cfg: Settings, signature: str) -> list[str]:
    """Process a single transaction and return its trade lines."""
    processor, rpc, price_client = build_processor(cfg)
    try:
        return await processor.process(signature)
    finally:
        await rpc.close()
        if price_client:
            await price_client.close()

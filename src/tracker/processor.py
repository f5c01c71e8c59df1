"""Turn a wallet transaction into human-readable trade lines.

signature → getTransaction → compute_deltas → resolve token metadata → lines.
Failures to obtain the transaction abort only that transaction; metadata
failures degrade to Unknown/UNKNOWN.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from loguru import logger
from pydantic import ValidationError

from src.parsers.dexscreener.client import DexScreenerClient
from src.parsers.solana_rpc.client import SolanaRpcClient
from src.parsers.solana_rpc.exceptions import SolanaRpcError
from src.tracker.balance_deltas import DuplicateMintPolicy, compute_deltas
from src.tracker.constants import SOL_DECIMALS
from src.tracker.exceptions import (
    MissingTransactionMeta,
    TransactionNotFound,
    WalletTrackerError,
)
from src.tracker.metadata_cache import MetadataCache
from src.tracker.metadata_resolver import MetadataResolver
from src.tracker.models import BalanceDelta, ParsedTransaction, TokenMetadata


def format_amount(amount: Decimal, decimals: int) -> str:
    """Fixed-point string with ``decimals`` places, rounding half up."""
    with localcontext() as ctx:
        ctx.prec = 100
        quantum = Decimal(1).scaleb(-decimals)
        return f"{amount.quantize(quantum, rounding=ROUND_HALF_UP):f}"


def format_native_delta(delta: BalanceDelta) -> str:
    amount = format_amount(abs(delta.change), SOL_DECIMALS)
    return f"Token: SOL, {delta.action}: {amount} SOL"


def format_token_delta(delta: BalanceDelta, metadata: TokenMetadata) -> str:
    amount = format_amount(abs(delta.change), metadata.decimals)
    return (
        f"Token: {metadata.name} ({delta.asset}), "
        f"{delta.action}: {amount} {metadata.symbol}"
    )


class TransactionProcessor:
    """Processes transactions of one watched wallet.

    Owns the metadata cache for its lifetime unless one is injected.
    """

    def __init__(
        self,
        rpc: SolanaRpcClient,
        wallet: str,
        *,
        cache: MetadataCache | None = None,
        resolver: MetadataResolver | None = None,
        price_client: DexScreenerClient | None = None,
        duplicate_mint_policy: DuplicateMintPolicy = DuplicateMintPolicy.LAST_WINS,
        fetch_retries: int = 0,
    ) -> None:
        self._rpc = rpc
        self._wallet = wallet
        self._cache = cache if cache is not None else MetadataCache()
        self._resolver = resolver or MetadataResolver(rpc)
        self._price_client = price_client
        self._policy = duplicate_mint_policy
        self._fetch_retries = fetch_retries
        self._processed = 0
        self._failed = 0

    @property
    def cache(self) -> MetadataCache:
        return self._cache

    @property
    def stats(self) -> dict[str, int]:
        return {
            "processed": self._processed,
            "failed": self._failed,
            "cached_tokens": len(self._cache),
        }

    async def process(self, tx: ParsedTransaction | str) -> list[str]:
        """Log and return the trade lines for one transaction.

        Returns an empty list when the transaction is skipped.
        """
        signature = tx if isinstance(tx, str) else tx.signature
        try:
            parsed = await self._load(tx)
            deltas = compute_deltas(parsed, self._wallet, self._policy)
        except TransactionNotFound as e:
            logger.error(f"[TX] Transaction not found: {e}")
            self._failed += 1
            return []
        except MissingTransactionMeta as e:
            logger.error(f"[TX] Transaction meta not available: {e}")
            self._failed += 1
            return []
        except WalletTrackerError as e:
            logger.error(f"[TX] Skipping {signature[:16]}: {e}")
            self._failed += 1
            return []
        except SolanaRpcError as e:
            logger.error(f"[TX] Failed to fetch {signature[:16]}: {e}")
            self._failed += 1
            return []
        except (ValidationError, InvalidOperation) as e:
            logger.error(f"[TX] Skipping {signature[:16]}, malformed transaction data: {e}")
            self._failed += 1
            return []

        logger.info(
            f"[TX] Processing {signature} for trades "
            f"(slot={parsed.slot}, block_time={parsed.block_time}, fee={parsed.meta.fee})"
        )
        if parsed.meta.err is not None:
            logger.debug(f"[TX] {signature[:16]} failed on-chain: {parsed.meta.err}")

        lines: list[str] = []
        for delta in deltas:
            if delta.is_native:
                line = format_native_delta(delta)
                logger.info(line)
                lines.append(line)
                continue

            metadata = await self._resolver.resolve(delta.asset, self._cache)
            line = format_token_delta(delta, metadata)
            logger.info(line)
            lines.append(line)
            await self._log_price(delta, metadata)

        if not lines:
            logger.info(f"[TX] No balance changes for watched wallet in {signature[:16]}")
        self._processed += 1
        return lines

    async def _load(self, tx: ParsedTransaction | str) -> ParsedTransaction:
        if isinstance(tx, ParsedTransaction):
            return tx

        result = await self._rpc.get_transaction(tx, retries=self._fetch_retries)
        if result is None:
            raise TransactionNotFound(tx)
        parsed = ParsedTransaction.from_rpc(result, signature=tx)
        if parsed.meta is None:
            raise MissingTransactionMeta(tx)
        return parsed

    async def _log_price(self, delta: BalanceDelta, metadata: TokenMetadata) -> None:
        if self._price_client is None:
            return
        try:
            price = await self._price_client.get_usd_price(delta.asset)
            if price is None or not price.is_finite():
                return
            value = format_amount(abs(delta.change) * price, 2)
        except Exception as e:
            logger.debug(f"[PRICE] Lookup failed for {delta.asset[:12]}: {e}")
            return
        logger.info(
            f"[PRICE] {metadata.symbol} @ ${price}, "
            f"{delta.action.lower()} value ≈ ${value}"
        )

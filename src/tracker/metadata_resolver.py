"""Resolve a mint address to name/symbol/decimals from on-chain accounts.

Two getAccountInfo calls per cache miss:
  1. Metaplex metadata PDA  → name + symbol (metadata_decoder)
  2. the mint itself        → decimals (u8 at offset 44)

Never raises: every failure degrades to UNKNOWN_METADATA and is logged.
"""

from loguru import logger
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from src.parsers.solana_rpc.client import SolanaRpcClient
from src.parsers.solana_rpc.exceptions import SolanaRpcError
from src.tracker.constants import METADATA_PROGRAM_ID, METADATA_SEED, MINT_DECIMALS_OFFSET
from src.tracker.exceptions import MalformedMetadata, MetadataFetchFailure
from src.tracker.metadata_cache import MetadataCache
from src.tracker.metadata_decoder import decode_metadata
from src.tracker.models import UNKNOWN_METADATA, TokenMetadata

METADATA_PROGRAM = Pubkey.from_string(METADATA_PROGRAM_ID)


def derive_metadata_address(mint: str) -> str:
    """Derive the Metaplex metadata PDA for a mint.

    Raises ValueError if ``mint`` is not a valid base58 public key.
    """
    mint_key = Pubkey.from_string(mint)
    pda, _bump = Pubkey.find_program_address(
        [METADATA_SEED, bytes(METADATA_PROGRAM), bytes(mint_key)],
        METADATA_PROGRAM,
    )
    return str(pda)


class MetadataResolver:
    def __init__(self, rpc: SolanaRpcClient) -> None:
        self._rpc = rpc

    async def resolve(self, mint: str, cache: MetadataCache) -> TokenMetadata:
        """Return metadata for ``mint``, consulting and filling ``cache``."""
        cached = cache.get(mint)
        if cached is not None:
            return cached

        try:
            metadata = await self._fetch(mint)
        except MetadataFetchFailure as e:
            logger.warning(f"[META] Fetch failed for {mint[:12]}: {e}")
            cache.mark_failed(mint)
            return UNKNOWN_METADATA
        except Exception as e:
            logger.warning(f"[META] Unexpected error resolving {mint[:12]}: {e}")
            cache.mark_failed(mint)
            return UNKNOWN_METADATA

        if metadata is None:
            cache.mark_absent(mint)
            return UNKNOWN_METADATA

        cache.put(mint, metadata)
        # A concurrent resolve may have stored its answer first
        return cache.get(mint) or metadata

    async def _fetch(self, mint: str) -> TokenMetadata | None:
        """Fetch and decode metadata. None means confirmed absent."""
        try:
            metadata_address = derive_metadata_address(mint)
        except ValueError as e:
            logger.warning(f"[META] Invalid mint address {mint!r}: {e}")
            return None

        raw = await self._get_account(metadata_address)
        if not raw:
            logger.debug(f"[META] No metadata account for {mint[:12]}")
            return None

        try:
            decoded = decode_metadata(raw)
        except MalformedMetadata as e:
            logger.warning(f"[META] Malformed metadata for {mint[:12]}: {e}")
            return None

        decimals = await self._fetch_decimals(mint)
        logger.debug(f"[META] {mint[:12]} → {decoded.name} ({decoded.symbol}), {decimals} dp")
        return TokenMetadata(name=decoded.name, symbol=decoded.symbol, decimals=decimals)

    async def _fetch_decimals(self, mint: str) -> int:
        raw = await self._get_account(mint)
        if not raw or len(raw) <= MINT_DECIMALS_OFFSET:
            return 0
        return raw[MINT_DECIMALS_OFFSET]

    async def _get_account(self, address: str) -> bytes | None:
        try:
            return await self._rpc.get_account_info(address)
        except SolanaRpcError as e:
            raise MetadataFetchFailure(f"getAccountInfo {address[:12]}: {e}") from e

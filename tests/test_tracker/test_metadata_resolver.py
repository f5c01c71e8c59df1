"""Tests for MetadataResolver: PDA derivation, fetch, caching of failures."""

from unittest.mock import patch

import pytest
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from src.tracker.constants import METADATA_PROGRAM_ID
from src.tracker.metadata_cache import EntryStatus, MetadataCache
from src.tracker.metadata_resolver import MetadataResolver, derive_metadata_address
from src.tracker.models import UNKNOWN_METADATA, TokenMetadata

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class TestDeriveMetadataAddress:
    def test_matches_find_program_address(self) -> None:
        program = Pubkey.from_string(METADATA_PROGRAM_ID)
        expected, _ = Pubkey.find_program_address(
            [b"metadata", bytes(program), bytes(Pubkey.from_string(USDC_MINT))],
            program,
        )
        assert derive_metadata_address(USDC_MINT) == str(expected)

    def test_deterministic(self) -> None:
        assert derive_metadata_address(USDC_MINT) == derive_metadata_address(USDC_MINT)

    def test_distinct_per_mint(self, new_mint) -> None:
        assert derive_metadata_address(new_mint()) != derive_metadata_address(new_mint())

    def test_off_curve(self) -> None:
        pda = Pubkey.from_string(derive_metadata_address(USDC_MINT))
        assert not pda.is_on_curve()

    def test_invalid_mint_raises(self) -> None:
        with pytest.raises(ValueError):
            derive_metadata_address("not-a-pubkey")


@pytest.fixture
def mint(new_mint) -> str:
    return new_mint()


@pytest.fixture
def resolver(fake_rpc) -> MetadataResolver:
    return MetadataResolver(fake_rpc)


class TestResolve:
    @pytest.mark.asyncio
    async def test_resolves_name_symbol_decimals(
        self, resolver, fake_rpc, mint, metadata_bytes, mint_bytes
    ) -> None:
        pda = derive_metadata_address(mint)
        fake_rpc.accounts[pda] = metadata_bytes("Bonk", "BONK")
        fake_rpc.accounts[mint] = mint_bytes(5)

        cache = MetadataCache()
        result = await resolver.resolve(mint, cache)

        assert result == TokenMetadata(name="Bonk", symbol="BONK", decimals=5)
        assert fake_rpc.account_calls == [pda, mint]
        assert cache.entry(mint).status is EntryStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_warm_cache_no_fetch(
        self, resolver, fake_rpc, mint, metadata_bytes, mint_bytes
    ) -> None:
        fake_rpc.accounts[derive_metadata_address(mint)] = metadata_bytes("Bonk", "BONK")
        fake_rpc.accounts[mint] = mint_bytes(5)
        cache = MetadataCache()

        first = await resolver.resolve(mint, cache)
        calls_after_first = len(fake_rpc.account_calls)
        second = await resolver.resolve(mint, cache)

        assert second is first
        assert len(fake_rpc.account_calls) == calls_after_first

    @pytest.mark.asyncio
    async def test_cache_hit_skips_derivation(self, resolver, fake_rpc, mint) -> None:
        cache = MetadataCache()
        cached = TokenMetadata(name="Cached", symbol="CCH", decimals=3)
        cache.put(mint, cached)

        with patch("src.tracker.metadata_resolver.derive_metadata_address") as derive:
            result = await resolver.resolve(mint, cache)

        assert result is cached
        derive.assert_not_called()
        assert fake_rpc.account_calls == []

    @pytest.mark.asyncio
    async def test_missing_mint_account_defaults_decimals(
        self, resolver, fake_rpc, mint, metadata_bytes
    ) -> None:
        fake_rpc.accounts[derive_metadata_address(mint)] = metadata_bytes("NoMint", "NM")
        result = await resolver.resolve(mint, MetadataCache())
        assert result == TokenMetadata(name="NoMint", symbol="NM", decimals=0)

    @pytest.mark.asyncio
    async def test_short_mint_account_defaults_decimals(
        self, resolver, fake_rpc, mint, metadata_bytes
    ) -> None:
        fake_rpc.accounts[derive_metadata_address(mint)] = metadata_bytes("Short", "SH")
        fake_rpc.accounts[mint] = b"\x00" * 44
        result = await resolver.resolve(mint, MetadataCache())
        assert result.decimals == 0


class TestResolveFailures:
    @pytest.mark.asyncio
    async def test_absent_metadata_cached_as_sentinel(self, resolver, fake_rpc, mint) -> None:
        cache = MetadataCache()

        first = await resolver.resolve(mint, cache)
        calls_after_first = len(fake_rpc.account_calls)
        second = await resolver.resolve(mint, cache)

        assert first == UNKNOWN_METADATA
        assert second == UNKNOWN_METADATA
        assert calls_after_first == 1  # mint account never fetched
        assert len(fake_rpc.account_calls) == calls_after_first
        assert cache.entry(mint).status is EntryStatus.CONFIRMED_ABSENT

    @pytest.mark.asyncio
    async def test_empty_metadata_account(self, resolver, fake_rpc, mint) -> None:
        fake_rpc.accounts[derive_metadata_address(mint)] = b""
        assert await resolver.resolve(mint, MetadataCache()) == UNKNOWN_METADATA

    @pytest.mark.asyncio
    async def test_malformed_metadata(self, resolver, fake_rpc, mint, mint_bytes) -> None:
        fake_rpc.accounts[derive_metadata_address(mint)] = b"\x04" * 70
        fake_rpc.accounts[mint] = mint_bytes(6)
        cache = MetadataCache()

        assert await resolver.resolve(mint, cache) == UNKNOWN_METADATA
        assert cache.entry(mint).status is EntryStatus.CONFIRMED_ABSENT

    @pytest.mark.asyncio
    async def test_invalid_mint_no_fetch(self, resolver, fake_rpc) -> None:
        cache = MetadataCache()
        assert await resolver.resolve("not-a-pubkey", cache) == UNKNOWN_METADATA
        assert fake_rpc.account_calls == []
        assert cache.entry("not-a-pubkey").status is EntryStatus.CONFIRMED_ABSENT

    @pytest.mark.asyncio
    async def test_fetch_error_is_transient(
        self, resolver, fake_rpc, mint, metadata_bytes, mint_bytes
    ) -> None:
        pda = derive_metadata_address(mint)
        fake_rpc.failing.add(pda)
        now = [0.0]
        cache = MetadataCache(retry_after=30.0, clock=lambda: now[0])

        assert await resolver.resolve(mint, cache) == UNKNOWN_METADATA
        assert cache.entry(mint).status is EntryStatus.TRANSIENT_FAILURE

        # within the retry window: served from cache
        await resolver.resolve(mint, cache)
        assert fake_rpc.account_calls == [pda]

        # after the window the RPC has recovered
        fake_rpc.failing.clear()
        fake_rpc.accounts[pda] = metadata_bytes("Recovered", "REC")
        fake_rpc.accounts[mint] = mint_bytes(9)
        now[0] = 31.0

        result = await resolver.resolve(mint, cache)
        assert result == TokenMetadata(name="Recovered", symbol="REC", decimals=9)
        assert cache.entry(mint).status is EntryStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_mint_fetch_error_is_transient(
        self, resolver, fake_rpc, mint, metadata_bytes
    ) -> None:
        fake_rpc.accounts[derive_metadata_address(mint)] = metadata_bytes("Half", "HLF")
        fake_rpc.failing.add(mint)
        cache = MetadataCache()

        assert await resolver.resolve(mint, cache) == UNKNOWN_METADATA
        assert cache.entry(mint).status is EntryStatus.TRANSIENT_FAILURE

    @pytest.mark.asyncio
    async def test_unexpected_error_never_raises(self, mint) -> None:
        class BrokenRpc:
            async def get_account_info(self, address: str) -> bytes | None:
                raise RuntimeError("socket exploded")

        result = await MetadataResolver(BrokenRpc()).resolve(mint, MetadataCache())
        assert result == UNKNOWN_METADATA

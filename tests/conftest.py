"""Shared test fixtures."""

import struct
from collections.abc import Callable
from typing import Any

import pytest
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from src.parsers.solana_rpc.exceptions import SolanaRpcError

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
COUNTERPARTY = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


class FakeRpc:
    """In-memory stand-in for SolanaRpcClient that counts calls."""

    def __init__(self) -> None:
        self.accounts: dict[str, bytes] = {}
        self.transactions: dict[str, dict[str, Any]] = {}
        self.failing: set[str] = set()
        self.account_calls: list[str] = []
        self.tx_calls: list[str] = []

    async def get_account_info(self, address: str) -> bytes | None:
        self.account_calls.append(address)
        if address in self.failing:
            raise SolanaRpcError(f"getAccountInfo failed for {address}")
        return self.accounts.get(address)

    async def get_transaction(
        self, signature: str, *, retries: int = 0
    ) -> dict[str, Any] | None:
        self.tx_calls.append(signature)
        if signature in self.failing:
            raise SolanaRpcError(f"getTransaction failed for {signature}")
        return self.transactions.get(signature)


@pytest.fixture
def wallet() -> str:
    return WALLET


@pytest.fixture
def counterparty() -> str:
    return COUNTERPARTY


@pytest.fixture
def fake_rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
def new_mint() -> Callable[[], str]:
    """Factory for fresh, valid mint addresses."""
    return lambda: str(Pubkey.new_unique())


@pytest.fixture
def metadata_bytes() -> Callable[..., bytes]:
    """Build a Metaplex metadata account with NUL-padded name/symbol."""

    def _build(
        name: str,
        symbol: str,
        *,
        name_pad: int = 32,
        symbol_pad: int = 10,
        uri: str = "https://arweave.net/abc",
    ) -> bytes:
        buf = bytearray()
        buf.append(4)  # Key::MetadataV1
        buf += b"\x01" * 32  # update authority
        buf += b"\x02" * 32  # mint
        for text, pad in ((name, name_pad), (symbol, symbol_pad), (uri, 200)):
            raw = text.encode("utf-8")
            raw += b"\x00" * max(0, pad - len(raw))
            buf += struct.pack("<I", len(raw))
            buf += raw
        return bytes(buf)

    return _build


@pytest.fixture
def mint_bytes() -> Callable[[int], bytes]:
    """Build an 82-byte SPL mint account with the given decimals."""

    def _build(decimals: int) -> bytes:
        data = bytearray(82)
        struct.pack_into("<Q", data, 36, 1_000_000_000)
        data[44] = decimals
        data[45] = 1
        return bytes(data)

    return _build


@pytest.fixture
def token_balance() -> Callable[..., dict[str, Any]]:
    """Build one pre/postTokenBalances entry as returned by getTransaction."""

    def _build(
        account_index: int, mint: str, owner: str | None, amount: str, decimals: int = 6
    ) -> dict[str, Any]:
        return {
            "accountIndex": account_index,
            "mint": mint,
            "owner": owner,
            "programId": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
            "uiTokenAmount": {
                "amount": "0",
                "decimals": decimals,
                "uiAmount": float(amount),
                "uiAmountString": amount,
            },
        }

    return _build


@pytest.fixture
def rpc_tx() -> Callable[..., dict[str, Any]]:
    """Build a jsonParsed getTransaction result."""

    def _build(
        *,
        account_keys: list[str],
        pre_balances: list[int],
        post_balances: list[int],
        pre_token_balances: list[dict[str, Any]] | None = None,
        post_token_balances: list[dict[str, Any]] | None = None,
        signature: str = "5zF2BrWiP184pTT7CwevRyhsEnFdJLMEDKEpfnWKsNtC",
        err: Any = None,
        include_meta: bool = True,
    ) -> dict[str, Any]:
        meta = {
            "err": err,
            "fee": 5000,
            "preBalances": pre_balances,
            "postBalances": post_balances,
            "preTokenBalances": pre_token_balances or [],
            "postTokenBalances": post_token_balances or [],
        }
        return {
            "slot": 250_000_000,
            "blockTime": 1_700_000_000,
            "transaction": {
                "signatures": [signature],
                "message": {
                    "accountKeys": [
                        {"pubkey": key, "signer": i == 0, "writable": True, "source": "transaction"}
                        for i, key in enumerate(account_keys)
                    ],
                },
            },
            "meta": meta if include_meta else None,
        }

    return _build

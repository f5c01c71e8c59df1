"""Transaction and token data shapes used by the tracker pipeline.

RPC-facing models are pydantic (built from raw ``getTransaction`` JSON),
pipeline results are frozen dataclasses.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from src.tracker.constants import NATIVE_ASSET


@dataclass(frozen=True)
class TokenMetadata:
    """Human-readable token description resolved from on-chain metadata."""

    name: str
    symbol: str
    decimals: int


UNKNOWN_METADATA = TokenMetadata(name="Unknown", symbol="UNKNOWN", decimals=0)


@dataclass(frozen=True)
class BalanceDelta:
    """Net change of one asset for the watched wallet within a transaction."""

    asset: str  # NATIVE_ASSET or mint address
    change: Decimal

    @property
    def is_native(self) -> bool:
        return self.asset == NATIVE_ASSET

    @property
    def action(self) -> str:
        return "Bought" if self.change > 0 else "Sold"


class TokenBalance(BaseModel):
    """One entry of meta.preTokenBalances / meta.postTokenBalances."""

    account_index: int
    mint: str
    owner: str | None = None
    ui_amount: Decimal = Decimal("0")

    model_config = {"extra": "ignore"}

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> "TokenBalance":
        ui = data.get("uiTokenAmount") or {}
        amount_str = ui.get("uiAmountString")
        if amount_str not in (None, ""):
            amount = Decimal(amount_str)
        elif ui.get("uiAmount") is not None:
            # uiAmount is a float; go through str to keep the printed digits
            amount = Decimal(str(ui["uiAmount"]))
        else:
            amount = Decimal("0")

        return cls(
            account_index=data.get("accountIndex", 0),
            mint=data.get("mint", ""),
            owner=data.get("owner"),
            ui_amount=amount,
        )


class TransactionMeta(BaseModel):
    """Balance-change section of a confirmed transaction."""

    pre_balances: list[int] = []
    post_balances: list[int] = []
    pre_token_balances: list[TokenBalance] = []
    post_token_balances: list[TokenBalance] = []
    fee: int = 0
    err: dict | str | None = None  # non-None means the transaction failed

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> "TransactionMeta":
        return cls(
            pre_balances=data.get("preBalances") or [],
            post_balances=data.get("postBalances") or [],
            pre_token_balances=[
                TokenBalance.from_rpc(b) for b in data.get("preTokenBalances") or []
            ],
            post_token_balances=[
                TokenBalance.from_rpc(b) for b in data.get("postTokenBalances") or []
            ],
            fee=data.get("fee", 0),
            err=data.get("err"),
        )


class ParsedTransaction(BaseModel):
    """Confirmed transaction reduced to what the delta engine needs."""

    signature: str = ""
    slot: int = 0
    block_time: int | None = None
    account_keys: list[str] = []
    meta: TransactionMeta | None = None

    @classmethod
    def from_rpc(cls, data: dict[str, Any], signature: str = "") -> "ParsedTransaction":
        """Build from a ``getTransaction`` result (``jsonParsed`` or ``json`` encoding).

        jsonParsed account keys are objects that already include addresses
        loaded from lookup tables. Plain-string keys (``json`` encoding) only
        list static keys, so meta.loadedAddresses is appended in runtime order:
        writable first, then readonly.
        """
        transaction = data.get("transaction") or {}
        message = transaction.get("message") or {}
        raw_meta = data.get("meta")

        account_keys: list[str] = []
        plain_keys = True
        for key in message.get("accountKeys") or []:
            if isinstance(key, dict):
                plain_keys = False
                account_keys.append(key.get("pubkey", ""))
            else:
                account_keys.append(str(key))

        if plain_keys and raw_meta:
            loaded = raw_meta.get("loadedAddresses") or {}
            account_keys.extend(loaded.get("writable") or [])
            account_keys.extend(loaded.get("readonly") or [])

        if not signature:
            signatures = transaction.get("signatures") or []
            signature = signatures[0] if signatures else ""

        return cls(
            signature=signature,
            slot=data.get("slot", 0),
            block_time=data.get("blockTime"),
            account_keys=account_keys,
            meta=TransactionMeta.from_rpc(raw_meta) if raw_meta else None,
        )

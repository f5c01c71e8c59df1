"""Net SOL and SPL token changes of one wallet within a transaction."""

from decimal import Decimal
from enum import Enum

from src.tracker.constants import LAMPORTS_PER_SOL, NATIVE_ASSET
from src.tracker.exceptions import MissingTransactionMeta, WalletNotInTransaction
from src.tracker.models import BalanceDelta, ParsedTransaction, TokenBalance


class DuplicateMintPolicy(Enum):
    """How to report a mint the wallet holds in more than one token account."""

    LAST_WINS = "last"  # later non-zero account change replaces earlier ones
    SUM = "sum"  # net change across all of the wallet's accounts


def compute_deltas(
    tx: ParsedTransaction,
    wallet: str,
    policy: DuplicateMintPolicy = DuplicateMintPolicy.LAST_WINS,
) -> list[BalanceDelta]:
    """Compute the watched wallet's non-zero balance changes.

    SOL first (if changed), then one delta per mint in order of first
    appearance among the wallet's post-state token accounts.
    """
    if tx.meta is None:
        raise MissingTransactionMeta(f"Transaction {tx.signature[:16]} has no meta")

    deltas: list[BalanceDelta] = []

    native_change = _native_change(tx, wallet)
    if native_change != 0:
        deltas.append(BalanceDelta(asset=NATIVE_ASSET, change=native_change))

    for mint, change in _token_changes(tx, wallet, policy).items():
        if change != 0:
            deltas.append(BalanceDelta(asset=mint, change=change))

    return deltas


def locate_wallet_index(tx: ParsedTransaction, wallet: str) -> int:
    """Position of ``wallet`` in the transaction's account keys."""
    try:
        return tx.account_keys.index(wallet)
    except ValueError:
        raise WalletNotInTransaction(
            f"Wallet {wallet[:12]} not among account keys of {tx.signature[:16]}"
        ) from None


def _native_change(tx: ParsedTransaction, wallet: str) -> Decimal:
    assert tx.meta is not None
    index = locate_wallet_index(tx, wallet)
    pre = tx.meta.pre_balances
    post = tx.meta.post_balances
    if index >= len(pre) or index >= len(post):
        raise WalletNotInTransaction(
            f"No native balance at index {index} in {tx.signature[:16]}"
        )
    return Decimal(post[index] - pre[index]) / Decimal(LAMPORTS_PER_SOL)


def _token_changes(
    tx: ParsedTransaction, wallet: str, policy: DuplicateMintPolicy
) -> dict[str, Decimal]:
    assert tx.meta is not None
    pre_by_index: dict[int, TokenBalance] = {}
    for balance in tx.meta.pre_token_balances:
        # first match wins, same as a linear search
        pre_by_index.setdefault(balance.account_index, balance)

    changes: dict[str, Decimal] = {}
    for post in tx.meta.post_token_balances:
        if post.owner != wallet:
            continue

        pre = pre_by_index.get(post.account_index)
        pre_amount = pre.ui_amount if pre is not None else Decimal("0")
        change = post.ui_amount - pre_amount
        if change == 0:
            continue

        if policy is DuplicateMintPolicy.SUM:
            changes[post.mint] = changes.get(post.mint, Decimal("0")) + change
        else:
            changes[post.mint] = change

    return changes

"""
Solana transaction parser: getTransaction payloads to balance deltas.

Purely structural: resolves the account list (legacy and versioned
messages), then reads the tracked address's pre/post balance at its index.
"""

from __future__ import annotations

from typing import Any

from solpay.core.exceptions import MalformedTransaction
from solpay.solana_rpc.models import TransactionDetail
from solpay.solpay_logging import get_logger

logger = get_logger(__name__)


def _get_account_keys(
    message: dict[str, Any],
    meta: dict[str, Any] | None = None,
) -> list[str]:
    """
    Resolve accountKeys to a list of base58 strings (handles json vs jsonParsed).
    For versioned transactions, appends meta.loadedAddresses (writable + readonly).
    """
    keys = message.get("accountKeys") or message.get("staticAccountKeys")
    if not keys:
        return []
    if isinstance(keys[0], str):
        out = list(keys)
    else:
        out = [k.get("pubkey", "") for k in keys if isinstance(k, dict)]
    loaded = (meta or {}).get("loadedAddresses") or {}
    for role in ("writable", "readonly"):
        for addr in loaded.get(role) or []:
            out.append(addr if isinstance(addr, str) else "")
    return out


def _int_list(values: Any, field: str, signature: str | None) -> list[int]:
    """Lamport balances as ints; MalformedTransaction on any unreadable entry."""
    if not isinstance(values, list):
        return []
    out: list[int] = []
    for pos, v in enumerate(values):
        if isinstance(v, bool) or not isinstance(v, int):
            raise MalformedTransaction(
                f"Unreadable {field} entry {v!r} at index {pos}",
                operation="getTransaction",
                signature=signature,
            )
        out.append(v)
    return out


def parse_transaction_detail(raw: dict[str, Any] | None, signature: str | None = None) -> TransactionDetail | None:
    """
    Build a TransactionDetail from a getTransaction result.

    Returns None when the payload has no message (pruned, or not a transaction).
    Raises MalformedTransaction when a pre/post balance entry is not an int.
    """
    if not isinstance(raw, dict):
        return None
    tx_obj = raw.get("transaction")
    if not isinstance(tx_obj, dict):
        return None
    message = tx_obj.get("message")
    if not isinstance(message, dict):
        return None
    meta = raw.get("meta")
    if not isinstance(meta, dict):
        meta = {}

    signatures = [s for s in (tx_obj.get("signatures") or []) if isinstance(s, str)]
    ident = signatures[0] if signatures else signature
    slot = raw.get("slot")
    block_time = raw.get("blockTime")
    try:
        fee = int(meta.get("fee") or 0)
    except (TypeError, ValueError):
        fee = 0

    return TransactionDetail(
        signature=ident,
        account_keys=_get_account_keys(message, meta),
        pre_balances=_int_list(meta.get("preBalances"), "preBalances", ident),
        post_balances=_int_list(meta.get("postBalances"), "postBalances", ident),
        fee=fee,
        slot=int(slot) if slot is not None else None,
        block_time=int(block_time) if isinstance(block_time, (int, float)) else None,
        err=meta.get("err"),
        signatures=signatures,
    )


def account_index(account_keys: list[str], address: str) -> int | None:
    """Position of address in the transaction's account list, or None."""
    try:
        return account_keys.index(address)
    except ValueError:
        return None


def balance_delta_lamports(detail: TransactionDetail, address: str) -> int | None:
    """
    post - pre balance (lamports) for address in this transaction.

    None if the address is not referenced or the balance arrays do not cover
    its index.
    """
    idx = account_index(detail.account_keys, address)
    if idx is None:
        return None
    if idx >= len(detail.pre_balances) or idx >= len(detail.post_balances):
        logger.warning(
            "parser_balance_index_out_of_range",
            signature=detail.signature,
            index=idx,
            pre_len=len(detail.pre_balances),
            post_len=len(detail.post_balances),
        )
        return None
    return detail.post_balances[idx] - detail.pre_balances[idx]

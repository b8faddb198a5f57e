"""
Data models for Solana RPC responses.

SignatureInfo mirrors one getSignaturesForAddress item; TransactionDetail is
the slice of a getTransaction result the ledger needs: account keys with
their pre/post balances, the fee, and whether the transaction failed.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SignatureInfo:
    """
    Normalized transaction signature info from getSignaturesForAddress.

    Mirrors Solana RPC response fields; sync walks these most recent first.
    """

    signature: str
    slot: int
    err: Any  # None if success; dict/object from RPC if failed
    block_time: int | None  # Unix timestamp; None if not available
    memo: str | None
    confirmation_status: str | None  # processed | confirmed | finalized

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureInfo":
        """Build from a single getSignaturesForAddress result item."""
        return cls(
            signature=item["signature"],
            slot=int(item["slot"]),
            err=item.get("err"),
            block_time=item.get("blockTime"),
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class TransactionDetail:
    """
    Balance view of one transaction.

    pre_balances / post_balances are lamports, index-aligned with account_keys.
    """

    signature: str | None
    account_keys: list[str]
    pre_balances: list[int]
    post_balances: list[int]
    fee: int = 0
    slot: int | None = None
    block_time: int | None = None
    err: Any = None
    signatures: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.err is not None

"""
Domain models for ledger entities.

Wallets, transactions, and payment requests as returned by LedgerStore.
Plain dataclasses with no ORM coupling; amounts are exposed in SOL as Decimal
and stored as integer lamports.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Union

LAMPORTS_PER_SOL = 1_000_000_000
_SCALE = Decimal(LAMPORTS_PER_SOL)

TX_INCOMING = "incoming"
TX_OUTGOING = "outgoing"
TX_STATUS_CONFIRMED = "confirmed"
TX_STATUS_FAILED = "failed"
REQUEST_STATUS_PENDING = "pending"


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / _SCALE


def sol_to_lamports(amount: Decimal | int | str) -> int:
    """Convert SOL to lamports; fractions below one lamport are truncated toward zero."""
    return int(Decimal(amount) * _SCALE)


# -----------------------------------------------------------------------------
# Wallet references: callers resolve "id or address" before reaching the core.
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ById:
    id: int

    def __str__(self) -> str:
        return f"id={self.id}"


@dataclass(frozen=True)
class ByAddress:
    address: str

    def __str__(self) -> str:
        return f"address={self.address}"


WalletRef = Union[ById, ByAddress]


@dataclass(frozen=True)
class Wallet:
    """Stored keypair identity. encrypted_secret is opaque to everything but KeyVault."""

    id: int
    address: str
    encrypted_secret: str
    label: str
    created_at: datetime | None
    last_balance: Decimal | None = None
    """SOL balance at last sync; None until first check."""
    last_checked_at: datetime | None = None

    def __repr__(self) -> str:
        return f"Wallet(id={self.id}, address={self.address!r}, label={self.label!r})"


@dataclass(frozen=True)
class NewTransaction:
    """Transaction row to insert; amount_lamports is signed (negative for outgoing)."""

    wallet_id: int
    signature: str
    type: str
    amount_lamports: int
    from_address: str | None = None
    to_address: str | None = None
    fee_lamports: int = 0
    slot: int | None = None
    block_time: datetime | None = None
    status: str = TX_STATUS_CONFIRMED


@dataclass(frozen=True)
class TransactionRecord:
    """One confirmed ledger event affecting a tracked wallet. Never mutated."""

    id: int
    wallet_id: int
    signature: str
    type: str
    amount_lamports: int
    from_address: str | None
    to_address: str | None
    fee_lamports: int
    slot: int | None
    block_time: datetime | None
    status: str
    created_at: datetime | None

    @property
    def amount(self) -> Decimal:
        return lamports_to_sol(self.amount_lamports)

    @property
    def fee(self) -> Decimal:
        return lamports_to_sol(self.fee_lamports)


@dataclass(frozen=True)
class PaymentRequest:
    """Solicitation for an incoming payment. status stays pending within this core."""

    id: int
    wallet_id: int
    amount: Decimal
    label: str
    message: str
    qr_code_url: str | None
    status: str
    created_at: datetime | None
    fulfilled_at: datetime | None = None
    wallet_address: str | None = None
    """Set when loaded together with the owning wallet."""

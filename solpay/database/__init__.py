"""
Ledger persistence: wallets, transaction history, payment requests.

SQLite by default via LedgerStore; any SQLAlchemy URL (e.g. PostgreSQL) works.
"""

from solpay.database.ledger_store import LedgerStore
from solpay.database.models import (
    ByAddress,
    ById,
    NewTransaction,
    PaymentRequest,
    TransactionRecord,
    Wallet,
    WalletRef,
)

__all__ = [
    "ByAddress",
    "ById",
    "LedgerStore",
    "NewTransaction",
    "PaymentRequest",
    "TransactionRecord",
    "Wallet",
    "WalletRef",
]

"""
Reconciliation engine: wallet creation, ledger sync, monitoring, and sends.
"""

from solpay.engine.events import (
    BalanceChanged,
    MonitorError,
    MonitorEvent,
    MonitorState,
    SyncCompleted,
    log_event,
)
from solpay.engine.reconciliation import (
    CreatedWallet,
    IssuedPaymentRequest,
    ReconciliationEngine,
    TransferResult,
)

__all__ = [
    "BalanceChanged",
    "CreatedWallet",
    "IssuedPaymentRequest",
    "MonitorError",
    "MonitorEvent",
    "MonitorState",
    "ReconciliationEngine",
    "SyncCompleted",
    "TransferResult",
    "log_event",
]

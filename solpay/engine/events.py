"""
Monitor events and state.

The monitor reports through a callback instead of printing; the default
callback writes each event as a structured log line.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Union

from solpay.solpay_logging import get_logger
from solpay.utils.payment_uri import format_sol

logger = get_logger(__name__)

TRIGGER_BALANCE_CHANGE = "balance_change"
TRIGGER_KEEPALIVE = "keepalive"


class MonitorState(str, Enum):
    IDLE = "idle"  # no baseline balance yet
    WATCHING = "watching"


@dataclass(frozen=True)
class BalanceChanged:
    address: str
    previous: Decimal
    current: Decimal
    delta: Decimal

    @property
    def incoming(self) -> bool:
        return self.delta > 0


@dataclass(frozen=True)
class SyncCompleted:
    wallet_id: int
    new_transactions: int
    trigger: str


@dataclass(frozen=True)
class MonitorError:
    address: str
    operation: str
    error: str


MonitorEvent = Union[BalanceChanged, SyncCompleted, MonitorError]
EventHandler = Callable[[MonitorEvent], None]


def log_event(event: MonitorEvent) -> None:
    """Default handler: one structured log line per event."""
    fields = {k: format_sol(v) if isinstance(v, Decimal) else v for k, v in asdict(event).items()}
    if isinstance(event, MonitorError):
        logger.warning("monitor_error", **fields)
    elif isinstance(event, BalanceChanged):
        logger.info("monitor_balance_changed", **fields)
    else:
        logger.info("monitor_sync_completed", **fields)

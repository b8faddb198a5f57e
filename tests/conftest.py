"""
Pytest fixtures for solpay tests. Uses a temporary SQLite ledger and an
in-memory fake chain client; nothing touches the network.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable

import pytest
from solders.keypair import Keypair

from solpay.database.models import lamports_to_sol
from solpay.solana_rpc.models import SignatureInfo, TransactionDetail

MASTER_SECRET = "test-master-secret"


def sig_info(signature: str, slot: int = 1, block_time: int | None = 1_700_000_000, err: Any = None) -> SignatureInfo:
    return SignatureInfo(
        signature=signature,
        slot=slot,
        err=err,
        block_time=block_time,
        memo=None,
        confirmation_status="finalized",
    )


def tx_detail(
    signature: str,
    account_keys: list[str],
    pre: list[int],
    post: list[int],
    fee: int = 5000,
    err: Any = None,
) -> TransactionDetail:
    return TransactionDetail(
        signature=signature,
        account_keys=account_keys,
        pre_balances=pre,
        post_balances=post,
        fee=fee,
        slot=10,
        block_time=1_700_000_000,
        err=err,
        signatures=[signature],
    )


def new_address() -> str:
    return str(Keypair().pubkey())


class FakeChainClient:
    """
    Scripted stand-in for ChainClient.

    balances: address -> list of lamport values, consumed one per call; the
    last value repeats. balance_errors are raised (in order) before any value.
    """

    commitment = "confirmed"

    def __init__(self) -> None:
        self.balances: dict[str, list[int]] = {}
        self.balance_errors: list[Exception] = []
        self.signatures: dict[str, list[SignatureInfo]] = {}
        self.details: dict[str, TransactionDetail | None] = {}
        self.calls: list[tuple[str, str]] = []
        self.on_get_balance: Callable[[int], None] | None = None
        self.closed = False

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    def get_balance_lamports(self, address: str) -> int:
        self.calls.append(("getBalance", address))
        if self.on_get_balance is not None:
            self.on_get_balance(self.count("getBalance"))
        if self.balance_errors:
            raise self.balance_errors.pop(0)
        seq = self.balances.get(address, [0])
        return seq.pop(0) if len(seq) > 1 else seq[0]

    def get_balance(self, address: str) -> Decimal:
        return lamports_to_sol(self.get_balance_lamports(address))

    def list_signatures(self, address: str, limit: int = 10) -> list[SignatureInfo]:
        self.calls.append(("getSignaturesForAddress", address))
        return list(self.signatures.get(address, []))[:limit]

    def get_transaction_detail(self, signature: str) -> TransactionDetail | None:
        self.calls.append(("getTransaction", signature))
        return self.details.get(signature)

    def close(self) -> None:
        self.closed = True


class FakeTransmitter:
    method = "fake"

    def __init__(self, signature: str = "FakeTransferSignature") -> None:
        self.signature = signature
        self.sent: list[tuple[str, str, Decimal]] = []
        self.error: Exception | None = None

    def send(self, secret_hex: str, to_address: str, amount: Decimal) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append((secret_hex, to_address, amount))
        return self.signature


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep operator environment (.env, shell) out of tests."""
    for name in (
        "SOLANA_NETWORK",
        "SOLANA_CLUSTER",
        "SOLANA_RPC_URL",
        "SOLPAY_MASTER_SECRET",
        "ENCRYPTION_KEY",
        "SOLPAY_DB_URL",
        "DATABASE_URL",
        "SOLPAY_DB_PATH",
        "SOLPAY_TRANSMITTER",
        "SOLANA_CLI_PATH",
        "POLL_INTERVAL_SEC",
        "KEEPALIVE_SYNC_CYCLES",
        "SYNC_SIGNATURE_LIMIT",
        "RPC_TIMEOUT_SEC",
        "QR_CODE_URL_TEMPLATE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("solpay.config.env.load_solpay_env", lambda: None)
    monkeypatch.setattr("solpay.config.settings.load_solpay_env", lambda: None)


@pytest.fixture
def ledger(tmp_path):
    """Fresh SQLite ledger per test."""
    from solpay.database.ledger_store import LedgerStore

    store = LedgerStore.open(f"sqlite:///{tmp_path / 'ledger.db'}")
    yield store
    store.close()


@pytest.fixture
def vault():
    from solpay.vault.key_vault import KeyVault

    return KeyVault(MASTER_SECRET)


@pytest.fixture
def chain():
    return FakeChainClient()


@pytest.fixture
def transmitter():
    return FakeTransmitter()


@pytest.fixture
def engine(ledger, vault, chain, transmitter):
    from solpay.engine.reconciliation import ReconciliationEngine

    return ReconciliationEngine(ledger, vault, chain, transmitter, sync_limit=10, poll_interval=0)

"""
Tests for LedgerStore: uniqueness, ordering, and all-or-nothing cascade delete.

Uses temporary SQLite DB via conftest fixtures.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import event

from solpay.core.exceptions import (
    DuplicateAddress,
    DuplicateSignature,
    PaymentRequestNotFound,
    WalletNotFound,
)
from solpay.database.models import ByAddress, ById, NewTransaction

ADDRESS = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
ADDRESS_2 = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"


def _tx(wallet_id: int, signature: str, lamports: int = 1000) -> NewTransaction:
    return NewTransaction(
        wallet_id=wallet_id,
        signature=signature,
        type="incoming" if lamports > 0 else "outgoing",
        amount_lamports=lamports,
    )


def test_insert_and_get_wallet(ledger):
    wallet = ledger.insert_wallet(ADDRESS, "sealed", "  my wallet ")
    assert wallet.id is not None
    assert wallet.label == "my wallet"
    assert wallet.last_balance is None
    assert wallet.created_at is not None
    assert ledger.get_wallet(ById(wallet.id)).address == ADDRESS
    assert ledger.get_wallet(ByAddress(ADDRESS)).id == wallet.id
    assert ledger.get_wallet(ById(999)) is None
    assert ledger.get_wallet(ByAddress(ADDRESS_2)) is None


def test_duplicate_address_rejected(ledger):
    ledger.insert_wallet(ADDRESS, "sealed")
    with pytest.raises(DuplicateAddress):
        ledger.insert_wallet(ADDRESS, "other")
    assert len(ledger.list_wallets()) == 1


def test_require_wallet_raises_not_found(ledger):
    with pytest.raises(WalletNotFound) as exc:
        ledger.require_wallet(ById(42), operation="sync")
    assert "operation=sync" in str(exc.value)
    assert isinstance(exc.value, LookupError)


def test_list_wallets_newest_first(ledger):
    first = ledger.insert_wallet(ADDRESS, "s1", "first")
    second = ledger.insert_wallet(ADDRESS_2, "s2", "second")
    assert [w.id for w in ledger.list_wallets()] == [second.id, first.id]


def test_update_label_and_balance(ledger):
    wallet = ledger.insert_wallet(ADDRESS, "sealed")
    assert ledger.update_label(wallet.id, "renamed").label == "renamed"
    updated = ledger.update_balance(wallet.id, Decimal("1.5"))
    assert updated.last_balance == Decimal("1.5")
    assert updated.last_checked_at is not None
    with pytest.raises(WalletNotFound):
        ledger.update_label(999, "x")


def test_insert_transaction_duplicate_signature(ledger):
    wallet = ledger.insert_wallet(ADDRESS, "sealed")
    record = ledger.insert_transaction(_tx(wallet.id, "sig-1", 20))
    assert record.amount == Decimal("0.00000002")
    assert ledger.has_signature("sig-1")
    with pytest.raises(DuplicateSignature) as exc:
        ledger.insert_transaction(_tx(wallet.id, "sig-1", 20))
    assert exc.value.signature == "sig-1"
    assert ledger.count_transactions(wallet.id) == 1


def test_signature_unique_across_wallets(ledger):
    w1 = ledger.insert_wallet(ADDRESS, "s1")
    w2 = ledger.insert_wallet(ADDRESS_2, "s2")
    ledger.insert_transaction(_tx(w1.id, "shared"))
    with pytest.raises(DuplicateSignature):
        ledger.insert_transaction(_tx(w2.id, "shared"))


def test_list_transactions_recent_first_and_bounded(ledger):
    wallet = ledger.insert_wallet(ADDRESS, "sealed")
    for i in range(5):
        ledger.insert_transaction(_tx(wallet.id, f"sig-{i}", i + 1))
    txs = ledger.list_transactions(wallet.id, limit=3)
    assert [t.signature for t in txs] == ["sig-4", "sig-3", "sig-2"]
    assert ledger.list_transactions(wallet.id, limit=0) == []


def test_payment_requests(ledger):
    wallet = ledger.insert_wallet(ADDRESS, "sealed")
    req = ledger.insert_payment_request(wallet.id, Decimal("0.25"), "Coffee", "", "https://qr.example/x")
    assert req.status == "pending"
    assert req.amount == Decimal("0.25")
    loaded = ledger.get_payment_request(req.id)
    assert loaded.wallet_address == ADDRESS
    assert loaded.label == "Coffee"
    assert loaded.fulfilled_at is None
    assert [r.id for r in ledger.list_payment_requests(wallet.id, "pending")] == [req.id]
    assert ledger.list_payment_requests(wallet.id, "fulfilled") == []
    with pytest.raises(PaymentRequestNotFound):
        ledger.get_payment_request(999)
    with pytest.raises(WalletNotFound):
        ledger.insert_payment_request(999, Decimal("1"))


def _populate(ledger):
    wallet = ledger.insert_wallet(ADDRESS, "sealed")
    other = ledger.insert_wallet(ADDRESS_2, "sealed-2")
    for i in range(3):
        ledger.insert_transaction(_tx(wallet.id, f"w-sig-{i}"))
    for i in range(2):
        ledger.insert_payment_request(wallet.id, Decimal("1"), f"req {i}")
    ledger.insert_transaction(_tx(other.id, "other-sig"))
    ledger.insert_payment_request(other.id, Decimal("2"))
    return wallet, other


def test_cascade_delete_removes_children(ledger):
    wallet, other = _populate(ledger)
    counts = ledger.delete_wallet(wallet.id)
    assert counts == {"transactions": 3, "payment_requests": 2}
    assert ledger.get_wallet(ById(wallet.id)) is None
    assert ledger.count_transactions(wallet.id) == 0
    assert ledger.count_payment_requests(wallet.id) == 0
    # other wallet untouched
    assert ledger.count_transactions(other.id) == 1
    assert ledger.count_payment_requests(other.id) == 1


def test_cascade_delete_is_all_or_nothing(ledger):
    wallet, _ = _populate(ledger)

    def _fail_wallet_delete(conn, cursor, statement, parameters, context, executemany):
        if statement.strip().upper().startswith("DELETE FROM WALLETS"):
            raise RuntimeError("injected failure")

    event.listen(ledger.engine, "before_cursor_execute", _fail_wallet_delete)
    try:
        with pytest.raises(RuntimeError, match="injected failure"):
            ledger.delete_wallet(wallet.id)
    finally:
        event.remove(ledger.engine, "before_cursor_execute", _fail_wallet_delete)

    assert ledger.get_wallet(ById(wallet.id)) is not None
    assert ledger.count_transactions(wallet.id) == 3
    assert ledger.count_payment_requests(wallet.id) == 2
    assert ledger.count_transactions() == 4
    assert ledger.count_payment_requests() == 3


def test_delete_missing_wallet(ledger):
    with pytest.raises(WalletNotFound):
        ledger.delete_wallet(12345)


def test_init_db_is_idempotent(ledger):
    ledger.insert_wallet(ADDRESS, "sealed")
    ledger.init_db()
    assert len(ledger.list_wallets()) == 1

"""
LedgerStore: SQLAlchemy-backed wallets, transactions, and payment requests.

Works against any SQLAlchemy URL (SQLite by default, PostgreSQL via
DATABASE_URL). Each instance owns its own engine and session factory, so
independent engine instances never share a connection.

Guarantees:
- wallets.address and transactions.signature are unique; a repeated
  signature surfaces as DuplicateSignature.
- delete_wallet removes child rows and the wallet in one transaction; any
  failure rolls the whole delete back.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterator

from sqlalchemy import create_engine, delete, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from solpay.config.env import mask_url
from solpay.core.exceptions import (
    DuplicateAddress,
    DuplicateSignature,
    PaymentRequestNotFound,
    WalletNotFound,
)
from solpay.database.models import (
    REQUEST_STATUS_PENDING,
    ByAddress,
    ById,
    NewTransaction,
    PaymentRequest,
    TransactionRecord,
    Wallet,
    WalletRef,
    sol_to_lamports,
)
from solpay.database.schema import Base, PaymentRequestRow, TransactionRow, WalletRow, utcnow
from solpay.solpay_logging import get_logger
from solpay.utils.wallet_utils import short_address

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_conn: Any, connection_record: Any) -> None:
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys = ON")
    cur.close()


class LedgerStore:
    """Persistent record of wallets, transactions, and payment requests."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        connect_args: dict[str, Any] = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True, echo=echo)
        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @classmethod
    def open(cls, url: str) -> "LedgerStore":
        """Create a store and make sure its tables exist."""
        store = cls(url)
        store.init_db()
        return store

    def init_db(self) -> None:
        """Create tables if they do not exist. Safe to call on every startup."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("ledger_init_db", url=mask_url(self.url))

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """One unit of work. Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # --- wallets ---

    def insert_wallet(self, address: str, encrypted_secret: str, label: str = "") -> Wallet:
        """Store a new wallet. DuplicateAddress if the address is already present."""
        try:
            with self._session_scope() as session:
                row = WalletRow(
                    address=address,
                    private_key_encrypted=encrypted_secret,
                    label=(label or "").strip() or None,
                )
                session.add(row)
                session.flush()
                wallet = row.to_record()
        except IntegrityError as e:
            raise DuplicateAddress(
                "Wallet address already stored",
                operation="insert_wallet",
                wallet=address,
                cause=e,
            ) from e
        logger.info("wallet_inserted", wallet_id=wallet.id, address=short_address(address))
        return wallet

    @staticmethod
    def _wallet_query(ref: WalletRef) -> Any:
        if isinstance(ref, ById):
            return select(WalletRow).where(WalletRow.id == ref.id)
        if isinstance(ref, ByAddress):
            return select(WalletRow).where(WalletRow.address == ref.address.strip())
        raise TypeError(f"Expected ById or ByAddress, got {type(ref).__name__}")

    def get_wallet(self, ref: WalletRef) -> Wallet | None:
        with self._session_scope() as session:
            row = session.execute(self._wallet_query(ref)).scalar_one_or_none()
            return row.to_record() if row else None

    def require_wallet(self, ref: WalletRef, *, operation: str = "get_wallet") -> Wallet:
        wallet = self.get_wallet(ref)
        if wallet is None:
            raise WalletNotFound(f"Wallet not found ({ref})", operation=operation, wallet=str(ref))
        return wallet

    def list_wallets(self) -> list[Wallet]:
        """All wallets, newest first."""
        with self._session_scope() as session:
            rows = session.execute(
                select(WalletRow).order_by(WalletRow.created_at.desc(), WalletRow.id.desc())
            ).scalars()
            return [r.to_record() for r in rows]

    def update_label(self, wallet_id: int, label: str) -> Wallet:
        with self._session_scope() as session:
            row = session.get(WalletRow, wallet_id)
            if row is None:
                raise WalletNotFound("Wallet not found", operation="update_label", wallet=wallet_id)
            row.label = (label or "").strip() or None
            session.flush()
            return row.to_record()

    def update_balance(
        self,
        wallet_id: int,
        balance: Decimal,
        checked_at: datetime | None = None,
    ) -> Wallet:
        """Record the latest observed balance (SOL) and when it was checked."""
        with self._session_scope() as session:
            row = session.get(WalletRow, wallet_id)
            if row is None:
                raise WalletNotFound("Wallet not found", operation="update_balance", wallet=wallet_id)
            row.last_balance_lamports = sol_to_lamports(balance)
            row.last_checked = checked_at or utcnow()
            session.flush()
            return row.to_record()

    def delete_wallet(self, wallet_id: int) -> dict[str, int]:
        """
        Delete a wallet with its transactions and payment requests, all or nothing.
        Returns counts of removed child rows.
        """
        with self._session_scope() as session:
            if session.get(WalletRow, wallet_id) is None:
                raise WalletNotFound("Wallet not found", operation="delete_wallet", wallet=wallet_id)
            tx_result = session.execute(delete(TransactionRow).where(TransactionRow.wallet_id == wallet_id))
            req_result = session.execute(
                delete(PaymentRequestRow).where(PaymentRequestRow.wallet_id == wallet_id)
            )
            session.execute(delete(WalletRow).where(WalletRow.id == wallet_id))
            counts = {"transactions": tx_result.rowcount, "payment_requests": req_result.rowcount}
        logger.info("wallet_deleted", wallet_id=wallet_id, **counts)
        return counts

    # --- transactions ---

    def has_signature(self, signature: str) -> bool:
        with self._session_scope() as session:
            found = session.execute(
                select(TransactionRow.id).where(TransactionRow.signature == signature)
            ).first()
            return found is not None

    def insert_transaction(self, tx: NewTransaction) -> TransactionRecord:
        """Insert one transaction. DuplicateSignature if the signature is already recorded."""
        try:
            with self._session_scope() as session:
                exists = session.execute(
                    select(TransactionRow.id).where(TransactionRow.signature == tx.signature)
                ).first()
                if exists is not None:
                    raise DuplicateSignature(tx.signature, operation="insert_transaction", wallet=tx.wallet_id)
                row = TransactionRow(
                    wallet_id=tx.wallet_id,
                    signature=tx.signature,
                    type=tx.type,
                    amount_lamports=tx.amount_lamports,
                    from_address=tx.from_address,
                    to_address=tx.to_address,
                    fee_lamports=tx.fee_lamports,
                    slot=tx.slot,
                    block_time=tx.block_time,
                    status=tx.status,
                )
                session.add(row)
                session.flush()
                return row.to_record()
        except IntegrityError as e:
            # lost a race with another writer between the check and the insert
            if self.has_signature(tx.signature):
                raise DuplicateSignature(
                    tx.signature, operation="insert_transaction", wallet=tx.wallet_id, cause=e
                ) from e
            raise

    def list_transactions(self, wallet_id: int, limit: int = 10) -> list[TransactionRecord]:
        """Transactions for a wallet, most recent first, at most limit rows."""
        with self._session_scope() as session:
            rows = session.execute(
                select(TransactionRow)
                .where(TransactionRow.wallet_id == wallet_id)
                .order_by(TransactionRow.created_at.desc(), TransactionRow.id.desc())
                .limit(max(0, limit))
            ).scalars()
            return [r.to_record() for r in rows]

    def count_transactions(self, wallet_id: int | None = None) -> int:
        with self._session_scope() as session:
            stmt = select(func.count(TransactionRow.id))
            if wallet_id is not None:
                stmt = stmt.where(TransactionRow.wallet_id == wallet_id)
            return int(session.execute(stmt).scalar_one())

    # --- payment requests ---

    def insert_payment_request(
        self,
        wallet_id: int,
        amount: Decimal,
        label: str = "",
        message: str = "",
        qr_code_url: str | None = None,
    ) -> PaymentRequest:
        with self._session_scope() as session:
            wallet = session.get(WalletRow, wallet_id)
            if wallet is None:
                raise WalletNotFound("Wallet not found", operation="insert_payment_request", wallet=wallet_id)
            row = PaymentRequestRow(
                wallet_id=wallet_id,
                amount_lamports=sol_to_lamports(amount),
                label=label or None,
                message=message or None,
                qr_code_url=qr_code_url,
                status=REQUEST_STATUS_PENDING,
            )
            session.add(row)
            session.flush()
            return row.to_record(wallet_address=wallet.address)

    def get_payment_request(self, request_id: int) -> PaymentRequest:
        with self._session_scope() as session:
            found = session.execute(
                select(PaymentRequestRow, WalletRow.address)
                .join(WalletRow, PaymentRequestRow.wallet_id == WalletRow.id)
                .where(PaymentRequestRow.id == request_id)
            ).first()
            if found is None:
                raise PaymentRequestNotFound(
                    f"Payment request {request_id} not found", operation="get_payment_request"
                )
            row, address = found
            return row.to_record(wallet_address=address)

    def list_payment_requests(self, wallet_id: int, status: str | None = None) -> list[PaymentRequest]:
        """Payment requests for a wallet, newest first, optionally filtered by status."""
        with self._session_scope() as session:
            stmt = select(PaymentRequestRow).where(PaymentRequestRow.wallet_id == wallet_id)
            if status:
                stmt = stmt.where(PaymentRequestRow.status == status)
            stmt = stmt.order_by(PaymentRequestRow.created_at.desc(), PaymentRequestRow.id.desc())
            return [r.to_record() for r in session.execute(stmt).scalars()]

    def count_payment_requests(self, wallet_id: int | None = None) -> int:
        with self._session_scope() as session:
            stmt = select(func.count(PaymentRequestRow.id))
            if wallet_id is not None:
                stmt = stmt.where(PaymentRequestRow.wallet_id == wallet_id)
            return int(session.execute(stmt).scalar_one())

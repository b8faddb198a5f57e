"""
SQLAlchemy schema: wallets, transactions, payment_requests.

address and signature are UNIQUE; transactions and payment_requests each
reference wallets(id). Amounts are integer lamports.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base

from solpay.database.models import (
    REQUEST_STATUS_PENDING,
    TX_STATUS_CONFIRMED,
    PaymentRequest,
    TransactionRecord,
    Wallet,
    lamports_to_sol,
)

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class WalletRow(Base):
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    address = Column(String(44), unique=True, nullable=False, index=True)
    private_key_encrypted = Column(Text, nullable=False)
    label = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_balance_lamports = Column(BigInteger, nullable=True)
    last_checked = Column(DateTime, nullable=True)

    def to_record(self) -> Wallet:
        return Wallet(
            id=self.id,
            address=self.address,
            encrypted_secret=self.private_key_encrypted,
            label=self.label or "",
            created_at=self.created_at,
            last_balance=(
                lamports_to_sol(self.last_balance_lamports)
                if self.last_balance_lamports is not None
                else None
            ),
            last_checked_at=self.last_checked,
        )


class TransactionRow(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    signature = Column(String(88), unique=True, nullable=False, index=True)
    type = Column(String(20), nullable=False)
    amount_lamports = Column(BigInteger, nullable=False)
    from_address = Column(String(44), nullable=True)
    to_address = Column(String(44), nullable=True)
    fee_lamports = Column(BigInteger, nullable=False, default=0)
    slot = Column(BigInteger, nullable=True)
    block_time = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default=TX_STATUS_CONFIRMED)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_record(self) -> TransactionRecord:
        return TransactionRecord(
            id=self.id,
            wallet_id=self.wallet_id,
            signature=self.signature,
            type=self.type,
            amount_lamports=self.amount_lamports,
            from_address=self.from_address,
            to_address=self.to_address,
            fee_lamports=self.fee_lamports or 0,
            slot=self.slot,
            block_time=self.block_time,
            status=self.status,
            created_at=self.created_at,
        )


class PaymentRequestRow(Base):
    __tablename__ = "payment_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    amount_lamports = Column(BigInteger, nullable=False)
    label = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    qr_code_url = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=REQUEST_STATUS_PENDING)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    fulfilled_at = Column(DateTime, nullable=True)

    def to_record(self, wallet_address: str | None = None) -> PaymentRequest:
        return PaymentRequest(
            id=self.id,
            wallet_id=self.wallet_id,
            amount=lamports_to_sol(self.amount_lamports),
            label=self.label or "",
            message=self.message or "",
            qr_code_url=self.qr_code_url,
            status=self.status,
            created_at=self.created_at,
            fulfilled_at=self.fulfilled_at,
            wallet_address=wallet_address,
        )

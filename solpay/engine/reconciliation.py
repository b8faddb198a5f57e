"""
ReconciliationEngine: orchestrates KeyVault, LedgerStore, and ChainClient.

Responsibilities:
- Create wallets (generate, seal, persist).
- Sync recent on-chain history into the ledger, one row per signature.
- Monitor an address's balance on a cancellable timed loop, emitting events
  and re-syncing on change (plus a periodic keep-alive sync).
- Issue payment requests and send SOL through a pluggable Transmitter.

One engine instance is one logical thread of control. Callers serialize
sync calls for the same wallet (e.g. one monitor loop per wallet).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from solpay.config.settings import (
    DEFAULT_KEEPALIVE_SYNC_CYCLES,
    DEFAULT_POLL_INTERVAL_SEC,
    DEFAULT_QR_CODE_URL_TEMPLATE,
    DEFAULT_SYNC_SIGNATURE_LIMIT,
    Settings,
)
from solpay.core.exceptions import (
    ConfigurationError,
    DuplicateSignature,
    InsufficientBalance,
    InvalidEncoding,
    MalformedTransaction,
    MissingMasterSecret,
    NetworkError,
    RpcError,
)
from solpay.database.ledger_store import LedgerStore
from solpay.database.models import (
    TX_INCOMING,
    TX_OUTGOING,
    TX_STATUS_CONFIRMED,
    TX_STATUS_FAILED,
    ById,
    NewTransaction,
    PaymentRequest,
    TransactionRecord,
    Wallet,
    WalletRef,
    sol_to_lamports,
)
from solpay.engine.events import (
    TRIGGER_BALANCE_CHANGE,
    TRIGGER_KEEPALIVE,
    BalanceChanged,
    EventHandler,
    MonitorError,
    MonitorState,
    SyncCompleted,
    log_event,
)
from solpay.solana_rpc.client import ChainClient
from solpay.solana_rpc.models import SignatureInfo, TransactionDetail
from solpay.solana_rpc.parser import balance_delta_lamports
from solpay.solpay_logging import get_logger
from solpay.transmitter import Transmitter, build_transmitter
from solpay.utils.base58 import PUBKEY_LENGTH
from solpay.utils.payment_uri import build_payment_link, format_sol
from solpay.utils.wallet_utils import is_valid_wallet, short_address
from solpay.vault.key_vault import KeyVault

logger = get_logger(__name__)

# Network base fee per signature; recorded on sends as an approximation.
BASE_FEE_LAMPORTS = 5000


@dataclass(frozen=True)
class CreatedWallet:
    """A freshly stored wallet plus its raw seed, for one-time display."""

    wallet: Wallet
    raw_secret_hex: str

    def __repr__(self) -> str:
        return f"CreatedWallet(wallet={self.wallet!r})"


@dataclass(frozen=True)
class IssuedPaymentRequest:
    request: PaymentRequest
    solana_url: str


@dataclass(frozen=True)
class TransferResult:
    signature: str
    from_address: str
    to_address: str
    amount: Decimal
    method: str


def _block_datetime(unix_ts: int | None) -> datetime | None:
    if unix_ts is None:
        return None
    return datetime.fromtimestamp(unix_ts, tz=timezone.utc).replace(tzinfo=None)


class ReconciliationEngine:
    def __init__(
        self,
        store: LedgerStore,
        vault: KeyVault | None,
        chain: ChainClient,
        transmitter: Transmitter | None = None,
        *,
        sync_limit: int = DEFAULT_SYNC_SIGNATURE_LIMIT,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SEC,
        keepalive_cycles: int = DEFAULT_KEEPALIVE_SYNC_CYCLES,
        qr_template: str = DEFAULT_QR_CODE_URL_TEMPLATE,
    ) -> None:
        self.store = store
        self.vault = vault
        self.chain = chain
        self.transmitter = transmitter
        self.sync_limit = sync_limit
        self.poll_interval = poll_interval
        self.keepalive_cycles = keepalive_cycles
        self.qr_template = qr_template
        self.monitor_state = MonitorState.IDLE

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReconciliationEngine":
        """
        Wire an engine from settings. The vault is left out when no master
        secret is configured; operations that need it then fail with
        MissingMasterSecret.
        """
        store = LedgerStore.open(settings.database_url)
        chain = ChainClient(settings.rpc_url, timeout=settings.rpc_timeout_sec)
        vault = KeyVault(settings.master_secret) if settings.master_secret else None
        return cls(
            store,
            vault,
            chain,
            build_transmitter(settings, chain),
            sync_limit=settings.sync_signature_limit,
            poll_interval=settings.poll_interval_sec,
            keepalive_cycles=settings.keepalive_sync_cycles,
            qr_template=settings.qr_code_url_template,
        )

    def close(self) -> None:
        self.chain.close()
        self.store.close()

    def _require_vault(self, operation: str) -> KeyVault:
        if self.vault is None:
            raise MissingMasterSecret(
                "Master secret is not configured (set SOLPAY_MASTER_SECRET)",
                operation=operation,
            )
        return self.vault

    # --- wallets ---

    def create_wallet(self, label: str = "") -> CreatedWallet:
        """Generate a keypair, seal its seed, and store the wallet."""
        generated = self._require_vault("create_wallet").generate(label)
        wallet = self.store.insert_wallet(generated.address, generated.encrypted_secret, label)
        logger.info("wallet_created", wallet_id=wallet.id, address=wallet.address)
        return CreatedWallet(wallet=wallet, raw_secret_hex=generated.raw_secret_hex)

    def get_wallet(self, ref: WalletRef) -> Wallet:
        return self.store.require_wallet(ref)

    def list_wallets(self) -> list[Wallet]:
        return self.store.list_wallets()

    def update_label(self, wallet_id: int, label: str) -> Wallet:
        return self.store.update_label(wallet_id, label)

    def delete_wallet(self, wallet_id: int) -> dict[str, int]:
        return self.store.delete_wallet(wallet_id)

    def get_balance(self, address: str) -> Decimal:
        return self.chain.get_balance(address)

    def list_transactions(self, wallet_id: int, limit: int = 10) -> list[TransactionRecord]:
        return self.store.list_transactions(wallet_id, limit)

    # --- sync ---

    def _record_from_detail(
        self,
        wallet: Wallet,
        info: SignatureInfo,
        detail: TransactionDetail,
    ) -> NewTransaction | None:
        delta = balance_delta_lamports(detail, wallet.address)
        if delta is None:
            return None
        tx_type = TX_INCOMING if delta > 0 else TX_OUTGOING
        failed = detail.failed or info.err is not None
        return NewTransaction(
            wallet_id=wallet.id,
            signature=info.signature,
            type=tx_type,
            amount_lamports=delta,
            from_address=wallet.address if tx_type == TX_OUTGOING else None,
            to_address=wallet.address if tx_type == TX_INCOMING else None,
            fee_lamports=detail.fee,
            slot=detail.slot if detail.slot is not None else info.slot,
            block_time=_block_datetime(detail.block_time if detail.block_time is not None else info.block_time),
            status=TX_STATUS_FAILED if failed else TX_STATUS_CONFIRMED,
        )

    def sync(self, wallet_id: int) -> int:
        """
        Merge the wallet's recent on-chain signatures into the ledger.

        Signatures already stored are skipped before any detail fetch. A
        detail the node does not return, or returns with unreadable balances,
        is skipped without storing anything and retried on a later sync.
        A signature whose transaction does not reference the wallet address is
        never stored either, so it costs one getTransaction on every sync until
        it leaves the sync_limit window. Afterwards the wallet's balance is
        refreshed. Returns the number of newly inserted transactions; repeating
        a sync is always safe.
        """
        wallet = self.store.require_wallet(ById(wallet_id), operation="sync")
        log = logger.bind(wallet_id=wallet.id)
        candidates = self.chain.list_signatures(wallet.address, self.sync_limit)
        inserted = 0
        for info in candidates:
            if self.store.has_signature(info.signature):
                continue
            try:
                detail = self.chain.get_transaction_detail(info.signature)
            except MalformedTransaction as e:
                log.warning("sync_detail_malformed", signature=info.signature, error=str(e))
                continue
            if detail is None:
                log.debug("sync_detail_unavailable", signature=info.signature)
                continue
            new_tx = self._record_from_detail(wallet, info, detail)
            if new_tx is None:
                log.info("sync_address_not_in_transaction", signature=info.signature)
                continue
            try:
                self.store.insert_transaction(new_tx)
            except DuplicateSignature:
                continue
            inserted += 1
        balance = self.chain.get_balance(wallet.address)
        self.store.update_balance(wallet.id, balance)
        log.info("wallet_synced", candidates=len(candidates), new_transactions=inserted, balance=format_sol(balance))
        return inserted

    # --- monitor ---

    def monitor(
        self,
        address: str,
        wallet_id: int | None = None,
        *,
        stop_event: threading.Event,
        on_event: EventHandler | None = None,
        interval: float | None = None,
        keepalive_every: int | None = None,
    ) -> None:
        """
        Poll address until stop_event is set.

        Each cycle waits interval seconds (returning early when stopped), then
        re-fetches the balance. A change emits BalanceChanged and syncs
        wallet_id when given; otherwise every keepalive_every unchanged cycles
        a keep-alive sync runs. Remote failures are emitted as MonitorError and
        the loop continues. No RPC is issued once stop_event is observed set.
        """
        emit = on_event or log_event
        delay = self.poll_interval if interval is None else interval
        keepalive = self.keepalive_cycles if keepalive_every is None else keepalive_every
        self.monitor_state = MonitorState.IDLE
        last_balance: Decimal | None = None
        logger.info("monitor_started", address=address, wallet_id=wallet_id, interval_sec=delay)

        if not stop_event.is_set():
            last_balance = self._monitor_fetch_balance(address, emit)
            if last_balance is not None:
                self.monitor_state = MonitorState.WATCHING

        idle_cycles = 0
        while not stop_event.wait(timeout=delay):
            current = self._monitor_fetch_balance(address, emit)
            if current is None:
                continue
            if last_balance is None:
                last_balance = current
                self.monitor_state = MonitorState.WATCHING
                continue
            if current != last_balance:
                emit(BalanceChanged(address, last_balance, current, current - last_balance))
                last_balance = current
                idle_cycles = 0
                if wallet_id is not None and not stop_event.is_set():
                    self._monitor_sync(address, wallet_id, TRIGGER_BALANCE_CHANGE, emit)
                continue
            idle_cycles += 1
            if wallet_id is not None and keepalive > 0 and idle_cycles % keepalive == 0:
                if not stop_event.is_set():
                    self._monitor_sync(address, wallet_id, TRIGGER_KEEPALIVE, emit)

        logger.info("monitor_stopped", address=address, wallet_id=wallet_id)

    def _monitor_fetch_balance(self, address: str, emit: EventHandler) -> Decimal | None:
        try:
            return self.chain.get_balance(address)
        except (NetworkError, RpcError) as e:
            emit(MonitorError(address, "getBalance", str(e)))
            return None

    def _monitor_sync(self, address: str, wallet_id: int, trigger: str, emit: EventHandler) -> None:
        try:
            count = self.sync(wallet_id)
        except (NetworkError, RpcError) as e:
            emit(MonitorError(address, "sync", str(e)))
            return
        emit(SyncCompleted(wallet_id, count, trigger))

    # --- payment requests ---

    def create_payment_request(
        self,
        ref: WalletRef,
        amount: Decimal,
        label: str = "",
        message: str = "",
    ) -> IssuedPaymentRequest:
        """Store a pending request for amount SOL to the wallet; returns it with its Solana Pay URL."""
        amount = Decimal(amount)
        if amount <= 0:
            raise ValueError("Amount must be positive")
        wallet = self.store.require_wallet(ref, operation="create_payment_request")
        link = build_payment_link(wallet.address, amount, label, message, qr_template=self.qr_template)
        request = self.store.insert_payment_request(
            wallet.id,
            amount,
            label=label,
            message=message,
            qr_code_url=link.qr_code_url,
        )
        logger.info("payment_request_created", wallet_id=wallet.id, request_id=request.id, amount=format_sol(amount))
        return IssuedPaymentRequest(request=request, solana_url=link.solana_url)

    def get_payment_request(self, request_id: int) -> PaymentRequest:
        return self.store.get_payment_request(request_id)

    def list_payment_requests(self, wallet_id: int, status: str | None = None) -> list[PaymentRequest]:
        return self.store.list_payment_requests(wallet_id, status)

    # --- send ---

    def send(self, ref: WalletRef, to_address: str, amount: Decimal) -> TransferResult:
        """
        Send amount SOL from a stored wallet to to_address.

        The seed is decrypted for this call only and handed straight to the
        transmitter. On success the outgoing transaction is recorded.
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise ValueError("Amount must be positive")
        to_address = (to_address or "").strip()
        if not is_valid_wallet(to_address):
            raise InvalidEncoding(
                f"Destination is not a {PUBKEY_LENGTH}-byte public key",
                operation="send",
                wallet=to_address,
            )
        if self.transmitter is None:
            raise ConfigurationError("No transmitter configured", operation="send")
        vault = self._require_vault("send")
        wallet = self.store.require_wallet(ref, operation="send")

        balance = self.chain.get_balance(wallet.address)
        if balance < amount:
            raise InsufficientBalance(balance, amount, operation="send", wallet=wallet.address)

        signature = self.transmitter.send(vault.decrypt(wallet.encrypted_secret), to_address, amount)

        try:
            self.store.insert_transaction(
                NewTransaction(
                    wallet_id=wallet.id,
                    signature=signature,
                    type=TX_OUTGOING,
                    amount_lamports=-sol_to_lamports(amount),
                    from_address=wallet.address,
                    to_address=to_address,
                    fee_lamports=BASE_FEE_LAMPORTS,
                )
            )
        except DuplicateSignature:
            logger.debug("send_signature_already_recorded", signature=signature)
        logger.info(
            "transfer_sent",
            wallet_id=wallet.id,
            signature=signature,
            to_address=short_address(to_address),
            amount=format_sol(amount),
            method=self.transmitter.method,
        )
        return TransferResult(
            signature=signature,
            from_address=wallet.address,
            to_address=to_address,
            amount=amount,
            method=self.transmitter.method,
        )

"""
solpay command line: a thin shell over ReconciliationEngine.

Identifiers are resolved to WalletRef here (digits -> ById, anything else ->
ByAddress) before reaching the engine. Results go to stdout; logs go to
stderr.

    solpay generate --label shop --amount 0.5
    solpay monitor 1
    solpay send --from 1 --to <address> --amount 0.1 --yes
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from solpay import __version__
from solpay.config.settings import Settings, get_settings
from solpay.core.exceptions import SolpayError, TransferFailed
from solpay.database.models import ByAddress, ById, WalletRef
from solpay.engine.events import BalanceChanged, MonitorError, MonitorEvent, SyncCompleted
from solpay.engine.reconciliation import ReconciliationEngine
from solpay.solpay_logging import get_logger
from solpay.utils.payment_uri import format_sol

logger = get_logger(__name__)

SEP = "=" * 60


def parse_wallet_ref(identifier: str) -> WalletRef:
    value = (identifier or "").strip()
    if value.isdigit():
        return ById(int(value))
    return ByAddress(value)


def _decimal(raw: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {raw}") from None
    if not value.is_finite():
        raise argparse.ArgumentTypeError(f"not a number: {raw}")
    return value


def _fmt_time(value: Any) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} (yes/no): ")
    except EOFError:
        return False
    return answer.strip().lower() in ("yes", "y")


def _print_payment_request(issued: Any) -> None:
    req = issued.request
    print(f"Payment request #{req.id}")
    print(f"  Amount:   {format_sol(req.amount)} SOL")
    if req.label:
        print(f"  Label:    {req.label}")
    if req.message:
        print(f"  Message:  {req.message}")
    print(f"  Pay URL:  {issued.solana_url}")
    print(f"  QR code:  {req.qr_code_url}")


# --- commands ---


def cmd_generate(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    created = engine.create_wallet(args.label or "")
    wallet = created.wallet
    print(SEP)
    print("Wallet created")
    print(SEP)
    print(f"ID:       {wallet.id}")
    print(f"Address:  {wallet.address}")
    if wallet.label:
        print(f"Label:    {wallet.label}")
    print(f"Secret:   {created.raw_secret_hex}")
    print("Store the secret somewhere safe; it will not be shown again.")
    if args.amount is not None:
        print()
        _print_payment_request(
            engine.create_payment_request(ById(wallet.id), args.amount, args.label or "", args.message or "")
        )
    return 0


def cmd_list(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    wallets = engine.list_wallets()
    if not wallets:
        print("No wallets stored.")
        return 0
    print(f"{'ID':<5} {'Address':<45} {'Label':<20} {'Balance':>16}  Created")
    for w in wallets:
        balance = f"{w.last_balance:.4f} SOL" if w.last_balance is not None else "Unknown"
        print(f"{w.id:<5} {w.address:<45} {(w.label or '-')[:20]:<20} {balance:>16}  {_fmt_time(w.created_at)}")
    return 0


def cmd_wallet(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    wallet = engine.get_wallet(parse_wallet_ref(args.identifier))
    balance = engine.get_balance(wallet.address)
    print(f"ID:            {wallet.id}")
    print(f"Address:       {wallet.address}")
    print(f"Label:         {wallet.label or '-'}")
    print(f"Created:       {_fmt_time(wallet.created_at)}")
    print(f"Last checked:  {_fmt_time(wallet.last_checked_at)}")
    print(f"Balance:       {balance:.9f} SOL")
    return 0


def cmd_label(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    wallet = engine.update_label(args.wallet_id, args.label)
    print(f"Wallet {wallet.id} label set to {wallet.label!r}")
    return 0


def cmd_delete(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    wallet = engine.get_wallet(ById(args.wallet_id))
    if not args.yes and not _confirm(f"Delete wallet {wallet.id} ({wallet.address}) and all its records?"):
        print("Cancelled.")
        return 1
    counts = engine.delete_wallet(wallet.id)
    print(
        f"Deleted wallet {wallet.id} "
        f"({counts['transactions']} transactions, {counts['payment_requests']} payment requests)"
    )
    return 0


def cmd_balance(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    ref = parse_wallet_ref(args.identifier)
    if isinstance(ref, ById):
        address = engine.get_wallet(ref).address
    else:
        wallet = engine.store.get_wallet(ref)
        address = wallet.address if wallet else ref.address
    print(f"Address: {address}")
    print(f"Balance: {engine.get_balance(address):.9f} SOL")
    return 0


def cmd_sync(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    count = engine.sync(args.wallet_id)
    print(f"Synced wallet {args.wallet_id}: {count} new transaction(s)")
    return 0


def _print_event(event: MonitorEvent) -> None:
    if isinstance(event, BalanceChanged):
        direction = "received" if event.incoming else "sent"
        print(
            f"Balance changed: {format_sol(abs(event.delta))} SOL {direction} "
            f"(now {event.current:.9f} SOL)",
            flush=True,
        )
    elif isinstance(event, SyncCompleted):
        print(f"Synced ({event.trigger}): {event.new_transactions} new transaction(s)", flush=True)
    elif isinstance(event, MonitorError):
        print(f"Error during {event.operation}: {event.error}", file=sys.stderr, flush=True)


def cmd_monitor(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    ref = parse_wallet_ref(args.identifier)
    if isinstance(ref, ById):
        wallet = engine.get_wallet(ref)
        address = wallet.address
    else:
        wallet = engine.store.get_wallet(ref)
        address = ref.address
    stop_event = threading.Event()

    def _handle_sig(signum: int, frame: Any) -> None:
        sig = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
        logger.info("monitor_shutdown_signal", signal=sig)
        stop_event.set()

    try:
        signal.signal(signal.SIGINT, _handle_sig)
        if hasattr(signal, "SIGTERM"):
            signal.signal(signal.SIGTERM, _handle_sig)
    except (ValueError, OSError):
        # Signal only valid in main thread / not supported on this platform
        pass

    print(f"Monitoring {address} (Ctrl+C to stop)", flush=True)
    engine.monitor(
        address,
        wallet.id if wallet else None,
        stop_event=stop_event,
        on_event=_print_event,
    )
    print("Monitor stopped.")
    return 0


def cmd_transactions(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    txs = engine.list_transactions(args.wallet_id, args.limit)
    if not txs:
        print("No transactions recorded.")
        return 0
    for tx in txs:
        counterpart = tx.to_address if tx.type == "outgoing" else tx.from_address
        print(
            f"{_fmt_time(tx.block_time or tx.created_at)}  {tx.type:<8} {tx.amount:>+16.9f} SOL  "
            f"{tx.status:<9} {tx.signature[:20]}...  {counterpart or ''}"
        )
    return 0


def cmd_requests(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    requests = engine.list_payment_requests(args.wallet_id, args.status)
    if not requests:
        print("No payment requests.")
        return 0
    for req in requests:
        print(
            f"#{req.id:<5} {format_sol(req.amount):>14} SOL  {req.status:<9} "
            f"{_fmt_time(req.created_at)}  {req.label or '-'}"
        )
    return 0


def cmd_request(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    issued = engine.create_payment_request(
        parse_wallet_ref(args.identifier), args.amount, args.label or "", args.message or ""
    )
    _print_payment_request(issued)
    return 0


def cmd_send(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    ref = parse_wallet_ref(args.from_wallet)
    wallet = engine.get_wallet(ref)
    prompt = f"Send {format_sol(args.amount)} SOL from {wallet.address} to {args.to}?"
    if not args.yes and not _confirm(prompt):
        print("Cancelled.")
        return 1
    result = engine.send(ref, args.to, args.amount)
    print(f"Sent {format_sol(result.amount)} SOL via {result.method}")
    print(f"Signature: {result.signature}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="solpay", description="Custodial Solana wallet and payment tool.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--network", choices=("mainnet", "devnet", "testnet"), help="Override SOLANA_NETWORK")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("generate", help="Create a new wallet")
    p.add_argument("--label", default="")
    p.add_argument("--amount", type=_decimal, help="Also issue a payment request for this amount")
    p.add_argument("--message", default="")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("list", help="List stored wallets")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("wallet", help="Show one wallet")
    p.add_argument("identifier", help="Wallet id or address")
    p.set_defaults(func=cmd_wallet)

    p = sub.add_parser("label", help="Set a wallet label")
    p.add_argument("wallet_id", type=int)
    p.add_argument("label")
    p.set_defaults(func=cmd_label)

    p = sub.add_parser("delete", help="Delete a wallet and its records")
    p.add_argument("wallet_id", type=int)
    p.add_argument("--yes", action="store_true", help="Skip confirmation")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("balance", help="Show live balance of a wallet or any address")
    p.add_argument("identifier", help="Wallet id or address")
    p.set_defaults(func=cmd_balance)

    p = sub.add_parser("sync", help="Sync recent on-chain transactions into the ledger")
    p.add_argument("wallet_id", type=int)
    p.set_defaults(func=cmd_sync)

    p = sub.add_parser("monitor", help="Watch an address for balance changes")
    p.add_argument("identifier", help="Wallet id or address")
    p.set_defaults(func=cmd_monitor)

    p = sub.add_parser("transactions", help="Show recorded transactions")
    p.add_argument("wallet_id", type=int)
    p.add_argument("--limit", type=int, default=10)
    p.set_defaults(func=cmd_transactions)

    p = sub.add_parser("requests", help="List payment requests for a wallet")
    p.add_argument("wallet_id", type=int)
    p.add_argument("--status")
    p.set_defaults(func=cmd_requests)

    p = sub.add_parser("request", help="Issue a payment request")
    p.add_argument("identifier", help="Wallet id or address")
    p.add_argument("--amount", type=_decimal, required=True)
    p.add_argument("--label", default="")
    p.add_argument("--message", default="")
    p.set_defaults(func=cmd_request)

    p = sub.add_parser("send", help="Send SOL from a stored wallet")
    p.add_argument("--from", dest="from_wallet", required=True, help="Wallet id or address")
    p.add_argument("--to", required=True, help="Destination address")
    p.add_argument("--amount", type=_decimal, required=True)
    p.add_argument("--yes", action="store_true", help="Skip confirmation")
    p.set_defaults(func=cmd_send)

    return parser


def main(
    argv: list[str] | None = None,
    *,
    engine_factory: Callable[[Settings], ReconciliationEngine] = ReconciliationEngine.from_settings,
) -> int:
    args = build_parser().parse_args(argv)
    try:
        engine = engine_factory(get_settings(args.network))
    except SolpayError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    try:
        return args.func(engine, args)
    except TransferFailed as e:
        logger.warning("cli_transfer_failed", error=str(e))
        print(f"ERROR: {e.message}", file=sys.stderr)
        if e.raw_output:
            print(e.raw_output.strip(), file=sys.stderr)
        return 1
    except (SolpayError, ValueError) as e:
        logger.warning("cli_command_failed", command=args.command, error=str(e))
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    finally:
        engine.close()


if __name__ == "__main__":
    sys.exit(main())

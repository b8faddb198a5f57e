"""
Application settings.

Collects everything the engine needs from the environment into one frozen
object so that components receive explicit values instead of reading
globals (the master secret in particular is injected, never looked up).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from solpay.config.env import (
    get_cli_url,
    get_database_url,
    get_master_secret,
    get_solana_network,
    get_solana_rpc_url,
    load_solpay_env,
    normalize_network,
)

DEFAULT_POLL_INTERVAL_SEC = 5.0
DEFAULT_KEEPALIVE_SYNC_CYCLES = 6
DEFAULT_SYNC_SIGNATURE_LIMIT = 10
DEFAULT_RPC_TIMEOUT_SEC = 30.0
DEFAULT_QR_CODE_URL_TEMPLATE = "https://api.qrserver.com/v1/create-qr-code/?size=200x200&data={data}"
TRANSMITTERS = ("cli", "rpc")


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one engine instance."""

    network: str
    rpc_url: str
    cli_url: str
    database_url: str
    master_secret: str | None
    transmitter: str = "cli"
    solana_cli_path: str = "solana"
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC
    keepalive_sync_cycles: int = DEFAULT_KEEPALIVE_SYNC_CYCLES
    sync_signature_limit: int = DEFAULT_SYNC_SIGNATURE_LIMIT
    rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC
    qr_code_url_template: str = DEFAULT_QR_CODE_URL_TEMPLATE


def get_settings(network: str | None = None) -> Settings:
    """
    Return settings from the environment; an explicit network overrides SOLANA_NETWORK.

    The master secret may be None here; KeyVault construction is where its
    absence becomes an error.
    """
    load_solpay_env()
    net = normalize_network(network) if network else get_solana_network()
    rpc_url = get_solana_rpc_url(net)
    transmitter = (os.getenv("SOLPAY_TRANSMITTER") or "cli").strip().lower()
    if transmitter not in TRANSMITTERS:
        transmitter = "cli"
    return Settings(
        network=net,
        rpc_url=rpc_url,
        cli_url=get_cli_url(net, rpc_url),
        database_url=get_database_url(),
        master_secret=get_master_secret(),
        transmitter=transmitter,
        solana_cli_path=(os.getenv("SOLANA_CLI_PATH") or "solana").strip() or "solana",
        poll_interval_sec=max(0.1, _float_env("POLL_INTERVAL_SEC", DEFAULT_POLL_INTERVAL_SEC)),
        keepalive_sync_cycles=max(0, _int_env("KEEPALIVE_SYNC_CYCLES", DEFAULT_KEEPALIVE_SYNC_CYCLES)),
        sync_signature_limit=min(1000, max(1, _int_env("SYNC_SIGNATURE_LIMIT", DEFAULT_SYNC_SIGNATURE_LIMIT))),
        rpc_timeout_sec=_float_env("RPC_TIMEOUT_SEC", DEFAULT_RPC_TIMEOUT_SEC),
        qr_code_url_template=(os.getenv("QR_CODE_URL_TEMPLATE") or "").strip() or DEFAULT_QR_CODE_URL_TEMPLATE,
    )

"""
Environment variable loading and validation for solpay.

- SOLANA_NETWORK: mainnet | devnet | testnet (default: devnet)
- SOLANA_RPC_URL: RPC endpoint override (otherwise the network default)
- SOLPAY_MASTER_SECRET: master secret for key encryption (ENCRYPTION_KEY accepted)
- SOLPAY_DB_URL / DATABASE_URL: SQLAlchemy URL; else SQLite at SOLPAY_DB_PATH
- Loads .env from the working directory or project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from solpay.core.exceptions import InvalidNetwork

# config is solpay/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
DEVNET_RPC_URL = "https://api.devnet.solana.com"
TESTNET_RPC_URL = "https://api.testnet.solana.com"

NETWORK_RPC_URLS: dict[str, str] = {
    "mainnet": MAINNET_RPC_URL,
    "devnet": DEVNET_RPC_URL,
    "testnet": TESTNET_RPC_URL,
}
# solana CLI --url monikers
NETWORK_CLI_MONIKERS: dict[str, str] = {
    "mainnet": "mainnet-beta",
    "devnet": "devnet",
    "testnet": "testnet",
}

DEFAULT_NETWORK = "devnet"
DEFAULT_DB_PATH = "solpay.db"


def load_solpay_env() -> None:
    """Load .env from cwd, then project root. Existing variables win; safe to call repeatedly."""
    load_dotenv()
    if _ENV_PATH.exists():
        load_dotenv(_ENV_PATH)


def normalize_network(raw: str | None) -> str:
    """Map user input to mainnet | devnet | testnet; raise InvalidNetwork otherwise."""
    value = (raw or DEFAULT_NETWORK).strip().lower()
    if value == "mainnet-beta":
        value = "mainnet"
    if value not in NETWORK_RPC_URLS:
        raise InvalidNetwork(
            f"Invalid network: {raw!r}. Use: {', '.join(NETWORK_RPC_URLS)}",
            operation="normalize_network",
        )
    return value


def get_solana_network() -> str:
    """Return SOLANA_NETWORK from env (default devnet)."""
    load_solpay_env()
    return normalize_network(os.getenv("SOLANA_NETWORK") or os.getenv("SOLANA_CLUSTER"))


def get_solana_rpc_url(network: str | None = None) -> str:
    """
    Resolve Solana RPC URL.
    Order: SOLANA_RPC_URL > default endpoint for the network.
    """
    load_solpay_env()
    url = (os.getenv("SOLANA_RPC_URL") or "").strip()
    if url:
        return url
    return NETWORK_RPC_URLS[normalize_network(network) if network else get_solana_network()]


def get_cli_url(network: str, rpc_url: str | None = None) -> str:
    """Return the --url value for the solana CLI: a moniker for known networks, else the raw URL."""
    if rpc_url and rpc_url not in NETWORK_RPC_URLS.values():
        return rpc_url
    return NETWORK_CLI_MONIKERS.get(network, rpc_url or network)


def get_master_secret() -> str | None:
    """Return the operator master secret, or None when unset. Never defaulted."""
    load_solpay_env()
    secret = os.getenv("SOLPAY_MASTER_SECRET") or os.getenv("ENCRYPTION_KEY") or ""
    return secret or None


def get_database_url() -> str:
    """Return SOLPAY_DB_URL or DATABASE_URL if set; else SQLite from SOLPAY_DB_PATH or default."""
    load_solpay_env()
    url = (os.getenv("SOLPAY_DB_URL") or os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("SOLPAY_DB_PATH") or "").strip() or DEFAULT_DB_PATH
    return f"sqlite:///{path}"


def mask_url(url: str) -> str:
    """Strip credentials and query strings (API keys) from a URL for logging."""
    url = url.split("?")[0]
    if "@" in url:
        scheme, _, rest = url.partition("://")
        url = f"{scheme}://***@{rest.split('@', 1)[1]}"
    return url

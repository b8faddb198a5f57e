from solpay.config.env import (
    get_database_url,
    get_master_secret,
    get_solana_network,
    get_solana_rpc_url,
    load_solpay_env,
    normalize_network,
)
from solpay.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_database_url",
    "get_master_secret",
    "get_settings",
    "get_solana_network",
    "get_solana_rpc_url",
    "load_solpay_env",
    "normalize_network",
]

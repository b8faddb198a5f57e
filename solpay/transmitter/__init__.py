"""
Pluggable outbound transfer: RPC submission or the external solana CLI.
"""

from __future__ import annotations

from solpay.config.settings import Settings
from solpay.solana_rpc.client import ChainClient
from solpay.transmitter.base import Transmitter
from solpay.transmitter.external_tool import ExternalToolTransmitter
from solpay.transmitter.rpc import RpcTransmitter


def build_transmitter(settings: Settings, chain: ChainClient) -> Transmitter:
    """Transmitter selected by settings.transmitter ("rpc" or "cli")."""
    if settings.transmitter == "rpc":
        return RpcTransmitter(chain)
    return ExternalToolTransmitter(settings.cli_url, binary=settings.solana_cli_path)


__all__ = [
    "ExternalToolTransmitter",
    "RpcTransmitter",
    "Transmitter",
    "build_transmitter",
]

"""Wallet validation utilities."""

from solpay.core.exceptions import InvalidEncoding
from solpay.utils.base58 import PUBKEY_LENGTH, b58decode


def is_valid_wallet(w: str) -> bool:
    """Return True if w is a base58 string that decodes to exactly 32 bytes."""
    try:
        return len(b58decode((w or "").strip())) == PUBKEY_LENGTH
    except InvalidEncoding:
        return False


def short_address(address: str | None) -> str:
    """Truncate an address for log lines."""
    if not address:
        return "?"
    return address[:8] + "..."

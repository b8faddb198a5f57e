"""
Base58 codec for Solana addresses (Bitcoin alphabet), on top of the base58 package.

Leading zero bytes are written as leading '1's and restored on decode; the
numeric part decodes at its minimum big-endian width.
"""

from __future__ import annotations

import base58

from solpay.core.exceptions import InvalidEncoding

ALPHABET = base58.BITCOIN_ALPHABET.decode("ascii")

PUBKEY_LENGTH = 32


def b58encode(data: bytes) -> str:
    """Encode bytes to a base58 string."""
    return base58.b58encode(bytes(data)).decode("ascii")


def b58decode(encoded: str) -> bytes:
    """
    Decode a base58 string to bytes.

    Raises InvalidEncoding on any character outside the alphabet, naming the
    character and its position.
    """
    for pos, char in enumerate(encoded):
        if char not in ALPHABET:
            raise InvalidEncoding(
                f"Invalid character in base58 string: {char!r} at position {pos}",
                operation="b58decode",
            )
    try:
        return base58.b58decode(encoded)
    except ValueError as e:
        raise InvalidEncoding(f"Invalid base58 string: {e}", operation="b58decode", cause=e) from e


def decode_pubkey(address: str) -> bytes:
    """Decode an address to exactly 32 bytes, left-padding short values; InvalidEncoding otherwise."""
    raw = b58decode((address or "").strip())
    if not raw or len(raw) > PUBKEY_LENGTH:
        raise InvalidEncoding(
            f"Address does not decode to a {PUBKEY_LENGTH}-byte public key ({len(raw)} bytes)",
            operation="decode_pubkey",
            wallet=address,
        )
    return raw.rjust(PUBKEY_LENGTH, b"\x00")

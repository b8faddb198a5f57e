"""
Key custody: Ed25519 keypair generation and at-rest encryption of seeds.

Encryption:
    - Key: SHA-256 of the operator master secret (256-bit)
    - Cipher: AES-256-GCM (authenticated; tamper or wrong key fails loudly)
    - Nonce: 12 random bytes per call, so repeated encryption of one seed differs
    - Blob: base64(nonce || ciphertext+tag)

Only the 32-byte seed is stored; the keypair is re-derived from it when
needed. Decrypted material is returned to the caller for a single operation
and never cached here.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from solders.keypair import Keypair

from solpay.core.exceptions import DecryptionFailed, MissingMasterSecret
from solpay.solpay_logging import get_logger
from solpay.utils.base58 import b58encode
from solpay.utils.wallet_utils import short_address

logger = get_logger(__name__)

SEED_LENGTH = 32
NONCE_LENGTH = 12
GCM_TAG_LENGTH = 16


@dataclass(frozen=True)
class GeneratedKey:
    """Output of KeyVault.generate. raw_secret_hex is for one-time display/backup only."""

    address: str
    encrypted_secret: str
    raw_secret_hex: str
    label: str = ""

    def __repr__(self) -> str:
        return f"GeneratedKey(address={self.address!r}, label={self.label!r})"


def keypair_from_seed_hex(secret_hex: str) -> Keypair:
    """Derive the Ed25519 keypair from a hex seed."""
    try:
        seed = bytes.fromhex(secret_hex)
    except ValueError as e:
        raise DecryptionFailed("Stored secret is not valid hex", operation="keypair_from_seed", cause=e) from e
    if len(seed) != SEED_LENGTH:
        raise DecryptionFailed(
            f"Stored secret has {len(seed)} bytes, expected {SEED_LENGTH}",
            operation="keypair_from_seed",
        )
    return Keypair.from_seed(seed)


def address_from_seed_hex(secret_hex: str) -> str:
    """Base58 address for a hex seed."""
    return b58encode(bytes(keypair_from_seed_hex(secret_hex).pubkey()))


class KeyVault:
    """
    Generates keypairs and seals/opens their seeds under one master secret.

    Construction fails with MissingMasterSecret when no secret is given;
    there is no default key.
    """

    def __init__(self, master_secret: str | bytes | None) -> None:
        if not master_secret:
            raise MissingMasterSecret(
                "Master secret is not configured (set SOLPAY_MASTER_SECRET)",
                operation="KeyVault.__init__",
            )
        secret = master_secret.encode("utf-8") if isinstance(master_secret, str) else master_secret
        self._aead = AESGCM(hashlib.sha256(secret).digest())

    def generate(self, label: str = "") -> GeneratedKey:
        """Create a keypair from 32 random bytes; return its address and sealed seed."""
        seed = os.urandom(SEED_LENGTH)
        keypair = Keypair.from_seed(seed)
        address = b58encode(bytes(keypair.pubkey()))
        secret_hex = seed.hex()
        encrypted = self.encrypt(secret_hex)
        logger.info("vault_keypair_generated", address=short_address(address))
        return GeneratedKey(
            address=address,
            encrypted_secret=encrypted,
            raw_secret_hex=secret_hex,
            label=label,
        )

    def encrypt(self, raw_secret_hex: str) -> str:
        """Seal a hex secret; returns base64(nonce || ciphertext)."""
        nonce = os.urandom(NONCE_LENGTH)
        ciphertext = self._aead.encrypt(nonce, raw_secret_hex.encode("utf-8"), None)
        return base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """Open a sealed secret. DecryptionFailed on corruption, tampering, or a different master secret."""
        try:
            data = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise DecryptionFailed("Encrypted secret is not valid base64", operation="decrypt", cause=e) from e
        if len(data) < NONCE_LENGTH + GCM_TAG_LENGTH:
            raise DecryptionFailed(
                f"Encrypted secret too short ({len(data)} bytes)",
                operation="decrypt",
            )
        nonce, ciphertext = data[:NONCE_LENGTH], data[NONCE_LENGTH:]
        try:
            plain = self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionFailed(
                "Encrypted secret failed authentication (tampered, or sealed under another master secret)",
                operation="decrypt",
                cause=e,
            ) from e
        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionFailed("Decrypted secret is not text", operation="decrypt", cause=e) from e

    def open_keypair(self, blob: str) -> Keypair:
        """Decrypt and derive the signing keypair. Callers must not retain it past one operation."""
        return keypair_from_seed_hex(self.decrypt(blob))

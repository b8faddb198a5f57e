"""
Key custody: keypair generation and encrypted seed storage.
"""

from solpay.vault.key_vault import GeneratedKey, KeyVault, address_from_seed_hex, keypair_from_seed_hex

__all__ = ["GeneratedKey", "KeyVault", "address_from_seed_hex", "keypair_from_seed_hex"]

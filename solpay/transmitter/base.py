"""
Outbound transfer capability.

A Transmitter takes a decrypted seed, a destination, and an amount, and
either returns the transaction signature or raises TransferFailed. The
engine treats a send as atomic; no partial state is modeled.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal


class Transmitter(ABC):
    """Signs and broadcasts a single native SOL transfer."""

    method: str = ""

    @abstractmethod
    def send(self, secret_hex: str, to_address: str, amount: Decimal) -> str:
        """Transfer amount SOL from the seed's address to to_address; return the signature."""

"""
Application-level exceptions.

Every error carries the operation that failed, the wallet (id or address)
it concerned, and the underlying cause, so that str(err) alone is enough
for an operator to diagnose a failure.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class SolpayError(Exception):
    """Base class for all solpay errors."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        wallet: Any = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.wallet = wallet
        self.cause = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.wallet is not None:
            parts.append(f"wallet={self.wallet}")
        if self.cause is not None:
            parts.append(f"cause={type(self.cause).__name__}: {self.cause}")
        return " | ".join(parts)


# --- codec -------------------------------------------------------------------


class InvalidEncoding(SolpayError, ValueError):
    """Input is not valid base58 (or does not decode to the expected width)."""


# --- configuration / key custody ----------------------------------------------


class ConfigurationError(SolpayError):
    """Operator configuration is missing or invalid."""


class MissingMasterSecret(ConfigurationError):
    """No master secret configured; stored keys can neither be sealed nor opened."""


class InvalidNetwork(ConfigurationError, ValueError):
    """Unknown network name."""


class DecryptionFailed(SolpayError):
    """Encrypted secret is corrupt, tampered with, or sealed under another master secret."""


# --- ledger --------------------------------------------------------------------


class WalletNotFound(SolpayError, LookupError):
    """No wallet matches the given reference."""


class DuplicateAddress(SolpayError):
    """A wallet with this address is already stored."""


class PaymentRequestNotFound(SolpayError, LookupError):
    """No payment request with the given id."""


class DuplicateSignature(SolpayError):
    """A transaction with this signature is already recorded. Callers treat this as a skip."""

    def __init__(self, signature: str, **kwargs: Any) -> None:
        super().__init__(f"Transaction already recorded: {signature}", **kwargs)
        self.signature = signature


# --- remote --------------------------------------------------------------------


class NetworkError(SolpayError):
    """Transport failure or non-success HTTP status talking to the RPC node."""


class RpcError(SolpayError):
    """The RPC node answered with an error payload (or an unusable body)."""

    def __init__(self, message: str, *, code: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.code = code


class MalformedTransaction(RpcError):
    """A getTransaction result has balance data that cannot be read."""

    def __init__(self, message: str, *, signature: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.signature = signature

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} | signature={self.signature}" if self.signature else base


# --- transfers -----------------------------------------------------------------


class InsufficientBalance(SolpayError):
    """Wallet balance is below the amount to send."""

    def __init__(self, balance: Decimal, required: Decimal, **kwargs: Any) -> None:
        super().__init__(
            f"Insufficient balance. Current: {balance} SOL, Required: {required} SOL",
            **kwargs,
        )
        self.balance = balance
        self.required = required


class TransferFailed(SolpayError):
    """The transmitter could not produce a signature; raw_output keeps its diagnostics."""

    def __init__(self, message: str, *, raw_output: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.raw_output = raw_output


class TransmitterUnavailable(TransferFailed):
    """The configured transmitter cannot run here (e.g. solana CLI not installed)."""

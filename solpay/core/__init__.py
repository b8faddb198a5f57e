"""
Core utilities: the error taxonomy shared by every component.
"""

from solpay.core.exceptions import (
    ConfigurationError,
    DecryptionFailed,
    DuplicateAddress,
    DuplicateSignature,
    InsufficientBalance,
    InvalidEncoding,
    InvalidNetwork,
    MalformedTransaction,
    MissingMasterSecret,
    NetworkError,
    PaymentRequestNotFound,
    RpcError,
    SolpayError,
    TransferFailed,
    TransmitterUnavailable,
    WalletNotFound,
)

__all__ = [
    "ConfigurationError",
    "DecryptionFailed",
    "DuplicateAddress",
    "DuplicateSignature",
    "InsufficientBalance",
    "InvalidEncoding",
    "InvalidNetwork",
    "MalformedTransaction",
    "MissingMasterSecret",
    "NetworkError",
    "PaymentRequestNotFound",
    "RpcError",
    "SolpayError",
    "TransferFailed",
    "TransmitterUnavailable",
    "WalletNotFound",
]

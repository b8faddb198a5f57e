"""
solpay: custodial Solana wallet core: key custody, ledger reconciliation,
payment requests, and balance monitoring.
"""

__version__ = "0.1.0"

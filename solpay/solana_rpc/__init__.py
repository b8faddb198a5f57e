"""
Solana RPC access: balances, signature lists, and transaction balance details.
"""

from solpay.solana_rpc.client import ChainClient
from solpay.solana_rpc.models import SignatureInfo, TransactionDetail
from solpay.solana_rpc.parser import (
    account_index,
    balance_delta_lamports,
    parse_transaction_detail,
)

__all__ = [
    "ChainClient",
    "SignatureInfo",
    "TransactionDetail",
    "account_index",
    "balance_delta_lamports",
    "parse_transaction_detail",
]

from solpay.utils.base58 import b58decode, b58encode, decode_pubkey
from solpay.utils.wallet_utils import is_valid_wallet

__all__ = ["b58decode", "b58encode", "decode_pubkey", "is_valid_wallet"]

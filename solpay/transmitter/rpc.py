"""
RpcTransmitter: builds, signs, and submits a System Program transfer.

The wire format comes from solders (Message + VersionedTransaction); the
node is reached through the same ChainClient used for reads.
"""

from __future__ import annotations

import base64
from decimal import Decimal

from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from solpay.core.exceptions import NetworkError, RpcError, TransferFailed
from solpay.database.models import sol_to_lamports
from solpay.solana_rpc.client import ChainClient
from solpay.solpay_logging import get_logger
from solpay.transmitter.base import Transmitter
from solpay.utils.base58 import decode_pubkey
from solpay.utils.wallet_utils import short_address
from solpay.vault.key_vault import keypair_from_seed_hex

logger = get_logger(__name__)


class RpcTransmitter(Transmitter):
    method = "rpc"

    def __init__(self, chain: ChainClient) -> None:
        self._chain = chain

    def _latest_blockhash(self) -> Hash:
        result = self._chain.call("getLatestBlockhash", [{"commitment": self._chain.commitment}])
        value = result.get("value") if isinstance(result, dict) else None
        blockhash = (value or {}).get("blockhash")
        if not blockhash:
            raise RpcError("getLatestBlockhash returned no blockhash", operation="getLatestBlockhash")
        return Hash.from_string(blockhash)

    def send(self, secret_hex: str, to_address: str, amount: Decimal) -> str:
        keypair = keypair_from_seed_hex(secret_hex)
        lamports = sol_to_lamports(amount)
        to_pubkey = Pubkey(decode_pubkey(to_address))
        try:
            ix = transfer(
                TransferParams(from_pubkey=keypair.pubkey(), to_pubkey=to_pubkey, lamports=lamports)
            )
            msg = Message.new_with_blockhash([ix], keypair.pubkey(), self._latest_blockhash())
            tx = VersionedTransaction(msg, [keypair])
            tx_b64 = base64.b64encode(bytes(tx)).decode("utf-8")
            signature = self._chain.call(
                "sendTransaction",
                [tx_b64, {"encoding": "base64", "preflightCommitment": self._chain.commitment}],
            )
        except (NetworkError, RpcError) as e:
            logger.warning("rpc_transfer_failed", to_address=short_address(to_address), error=str(e))
            raise TransferFailed(
                "Transfer submission failed",
                operation="sendTransaction",
                cause=e,
                raw_output=str(e),
            ) from e
        if not isinstance(signature, str) or not signature:
            raise TransferFailed(
                "sendTransaction returned no signature",
                operation="sendTransaction",
                raw_output=repr(signature),
            )
        logger.info("rpc_transfer_sent", signature=signature, lamports=lamports)
        return signature

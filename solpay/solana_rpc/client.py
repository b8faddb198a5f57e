"""
ChainClient: minimal read-only Solana JSON-RPC client.

Three calls: getBalance, getSignaturesForAddress, getTransaction. No retries
or backoff; transport failures and non-2xx statuses raise NetworkError, error
payloads and unusable bodies raise RpcError. Callers layer retry policy on top.
"""

from __future__ import annotations

import itertools
from decimal import Decimal
from typing import Any

import httpx

from solpay.core.exceptions import NetworkError, RpcError
from solpay.database.models import lamports_to_sol
from solpay.solana_rpc.models import SignatureInfo, TransactionDetail
from solpay.solana_rpc.parser import parse_transaction_detail
from solpay.solpay_logging import get_logger

logger = get_logger(__name__)

DEFAULT_COMMITMENT = "confirmed"


class ChainClient:
    """Synchronous JSON-RPC accessor for one endpoint."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        commitment: str = DEFAULT_COMMITMENT,
    ) -> None:
        if not rpc_url or not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self.rpc_url = rpc_url.strip().rstrip("/")
        self.commitment = commitment
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))
        self._ids = itertools.count(1)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ChainClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call and return its result; raise on transport or RPC error."""
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = self._client.post(self.rpc_url, json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"RPC HTTP {e.response.status_code} from {self.rpc_url}",
                operation=method,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"RPC request to {self.rpc_url} failed",
                operation=method,
                cause=e,
            ) from e
        try:
            data = resp.json()
        except ValueError as e:
            raise RpcError("RPC returned a non-JSON body", operation=method, cause=e) from e
        if not isinstance(data, dict):
            raise RpcError("RPC returned an unexpected body", operation=method)
        if "error" in data:
            err = data["error"]
            if isinstance(err, dict):
                raise RpcError(
                    f"Solana RPC error: {err.get('message', err)} (code={err.get('code')})",
                    operation=method,
                    code=err.get("code"),
                )
            raise RpcError(f"Solana RPC error: {err}", operation=method)
        if "result" not in data:
            raise RpcError("Solana RPC returned no result", operation=method)
        return data["result"]

    def get_balance_lamports(self, address: str) -> int:
        result = self.call("getBalance", [address, {"commitment": self.commitment}])
        value = result.get("value") if isinstance(result, dict) else result
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise RpcError(
                f"getBalance returned {value!r}",
                operation="getBalance",
                wallet=address,
                cause=e,
            ) from e

    def get_balance(self, address: str) -> Decimal:
        """Balance in SOL (lamports / 10^9)."""
        return lamports_to_sol(self.get_balance_lamports(address))

    def list_signatures(self, address: str, limit: int = 10) -> list[SignatureInfo]:
        """Recent signatures for address, most recent first, at most limit."""
        result = self.call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": self.commitment}],
        )
        items = result if isinstance(result, list) else []
        infos: list[SignatureInfo] = []
        for item in items:
            if not isinstance(item, dict) or "signature" not in item:
                continue
            try:
                infos.append(SignatureInfo.from_rpc_item(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("rpc_skip_invalid_signature_item", error=str(e))
        return infos[:limit]

    def get_transaction_detail(self, signature: str) -> TransactionDetail | None:
        """Pre/post balances and fee for signature; None if the node does not have it.

        Raises MalformedTransaction when the balance arrays cannot be read.
        """
        result = self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": self.commitment,
                },
            ],
        )
        if result is None:
            return None
        return parse_transaction_detail(result, signature)

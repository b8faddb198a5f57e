"""
ExternalToolTransmitter: sends through the `solana` CLI binary.

The seed is expanded to the CLI's keypair file format (JSON array of the
64 keypair bytes) in a private temp file that is removed after the call,
whatever its outcome.
"""

from __future__ import annotations

import json
import os
import re
import shutil
import subprocess
import tempfile
from decimal import Decimal
from typing import Any, Callable

from solpay.core.exceptions import TransferFailed, TransmitterUnavailable
from solpay.solpay_logging import get_logger
from solpay.transmitter.base import Transmitter
from solpay.utils.payment_uri import format_sol
from solpay.utils.wallet_utils import short_address
from solpay.vault.key_vault import keypair_from_seed_hex

logger = get_logger(__name__)

SIGNATURE_RE = re.compile(r"Signature: ([A-Za-z0-9]{87,88})")
DEFAULT_TIMEOUT_SEC = 120.0


class ExternalToolTransmitter(Transmitter):
    method = "cli"

    def __init__(
        self,
        cli_url: str,
        *,
        binary: str = "solana",
        timeout: float = DEFAULT_TIMEOUT_SEC,
        runner: Callable[..., Any] = subprocess.run,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.cli_url = cli_url
        self.binary = binary
        self.timeout = timeout
        self._runner = runner
        self._which = which

    def resolve_binary(self) -> str:
        path = self._which(self.binary)
        if not path:
            raise TransmitterUnavailable(
                f"Solana CLI not found ({self.binary}). Install it or set SOLPAY_TRANSMITTER=rpc",
                operation="transfer",
            )
        return path

    def _write_keypair_file(self, secret_hex: str) -> str:
        keypair = keypair_from_seed_hex(secret_hex)
        fd, path = tempfile.mkstemp(prefix="solana_keypair_", suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(list(bytes(keypair)), f)
        return path

    def build_command(self, binary: str, keypair_file: str, to_address: str, amount: Decimal) -> list[str]:
        return [
            binary,
            "transfer",
            "--url",
            self.cli_url,
            "--keypair",
            keypair_file,
            "--allow-unfunded-recipient",
            to_address,
            format_sol(amount),
        ]

    def send(self, secret_hex: str, to_address: str, amount: Decimal) -> str:
        binary = self.resolve_binary()
        keypair_file = self._write_keypair_file(secret_hex)
        try:
            cmd = self.build_command(binary, keypair_file, to_address, amount)
            try:
                proc = self._runner(cmd, capture_output=True, text=True, timeout=self.timeout)
            except (OSError, subprocess.SubprocessError) as e:
                raise TransferFailed("Could not run solana CLI", operation="transfer", cause=e) from e
            output = f"{proc.stdout or ''}{proc.stderr or ''}"
            match = SIGNATURE_RE.search(output)
            if match:
                signature = match.group(1)
                logger.info("cli_transfer_sent", signature=signature, amount=format_sol(amount))
                return signature
            logger.warning("cli_transfer_failed", returncode=proc.returncode, to_address=short_address(to_address))
            if "insufficient funds" in output:
                raise TransferFailed("Insufficient funds in wallet", operation="transfer", raw_output=output)
            if "Invalid recipient address" in output:
                raise TransferFailed(
                    f"Invalid recipient address: {to_address}", operation="transfer", raw_output=output
                )
            raise TransferFailed(f"Transaction failed: {output.strip()}", operation="transfer", raw_output=output)
        finally:
            try:
                os.unlink(keypair_file)
            except FileNotFoundError:
                pass

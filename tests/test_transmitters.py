"""
Tests for outbound transmitters. The solana CLI is replaced by a fake
runner; RPC submission goes through httpx.MockTransport.
"""

from __future__ import annotations

import base64
import json
import os
import subprocess
from decimal import Decimal

import httpx
import pytest
from conftest import new_address
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from solpay.config.settings import Settings
from solpay.core.exceptions import TransferFailed, TransmitterUnavailable
from solpay.solana_rpc.client import ChainClient
from solpay.transmitter import ExternalToolTransmitter, RpcTransmitter, build_transmitter

SEED_HEX = "07" * 32
CLI_SIGNATURE = "5" * 88


class FakeRunner:
    def __init__(self, stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.cmd: list[str] | None = None
        self.keypair_bytes: list[int] | None = None
        self.kwargs: dict = {}

    def __call__(self, cmd, **kwargs):
        self.cmd = cmd
        self.kwargs = kwargs
        with open(cmd[cmd.index("--keypair") + 1], encoding="utf-8") as f:
            self.keypair_bytes = json.load(f)
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout, stderr=self.stderr)


def _cli(runner, which=lambda name: "/usr/local/bin/solana") -> ExternalToolTransmitter:
    return ExternalToolTransmitter("devnet", runner=runner, which=which)


def test_cli_transfer_returns_signature_and_removes_keypair_file():
    to = new_address()
    runner = FakeRunner(stdout=f"\nSignature: {CLI_SIGNATURE}\n")
    signature = _cli(runner).send(SEED_HEX, to, Decimal("0.25"))

    assert signature == CLI_SIGNATURE
    keypair_file = runner.cmd[runner.cmd.index("--keypair") + 1]
    assert runner.cmd == [
        "/usr/local/bin/solana",
        "transfer",
        "--url",
        "devnet",
        "--keypair",
        keypair_file,
        "--allow-unfunded-recipient",
        to,
        "0.25",
    ]
    assert runner.kwargs["capture_output"] is True
    expected = Keypair.from_seed(bytes.fromhex(SEED_HEX))
    assert runner.keypair_bytes == list(bytes(expected))
    assert len(runner.keypair_bytes) == 64
    assert not os.path.exists(keypair_file)


@pytest.mark.parametrize(
    "output, message",
    [
        ("Error: insufficient funds for fee", "Insufficient funds in wallet"),
        ("Error: Invalid recipient address", "Invalid recipient address"),
        ("Error: something else", "Transaction failed: Error: something else"),
    ],
)
def test_cli_failure_messages(output, message):
    runner = FakeRunner(stderr=output, returncode=1)
    with pytest.raises(TransferFailed) as exc:
        _cli(runner).send(SEED_HEX, new_address(), Decimal("1"))
    assert exc.value.message.startswith(message)
    assert exc.value.raw_output == output
    assert not os.path.exists(runner.cmd[runner.cmd.index("--keypair") + 1])


def test_cli_missing_binary():
    runner = FakeRunner()
    with pytest.raises(TransmitterUnavailable):
        _cli(runner, which=lambda name: None).send(SEED_HEX, new_address(), Decimal("1"))
    assert runner.cmd is None


def test_cli_runner_oserror_is_transfer_failed():
    def _boom(cmd, **kwargs):
        raise OSError("exec format error")

    with pytest.raises(TransferFailed):
        _cli(_boom).send(SEED_HEX, new_address(), Decimal("1"))


def _rpc_chain(handler) -> ChainClient:
    return ChainClient("https://rpc.test", client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_rpc_transmitter_builds_signed_transfer():
    to = new_address()
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["method"] == "getLatestBlockhash":
            result = {"context": {"slot": 1}, "value": {"blockhash": "11111111111111111111111111111111", "lastValidBlockHeight": 10}}
        else:
            assert body["method"] == "sendTransaction"
            assert body["params"][1]["encoding"] == "base64"
            sent.append(base64.b64decode(body["params"][0]))
            result = "rpc-signature"
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    signature = RpcTransmitter(_rpc_chain(handler)).send(SEED_HEX, to, Decimal("0.000001"))

    assert signature == "rpc-signature"
    tx = VersionedTransaction.from_bytes(sent[0])
    keys = [str(k) for k in tx.message.account_keys]
    payer = str(Keypair.from_seed(bytes.fromhex(SEED_HEX)).pubkey())
    assert keys[0] == payer
    assert to in keys
    assert len(tx.signatures) == 1


def test_rpc_transmitter_wraps_rpc_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["method"] == "getLatestBlockhash":
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": body["id"], "result": {"value": {"blockhash": "11111111111111111111111111111111"}}},
            )
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32002, "message": "insufficient funds for rent"}},
        )

    with pytest.raises(TransferFailed) as exc:
        RpcTransmitter(_rpc_chain(handler)).send(SEED_HEX, new_address(), Decimal("1"))
    assert "insufficient funds for rent" in exc.value.raw_output


def _settings(transmitter: str) -> Settings:
    return Settings(
        network="devnet",
        rpc_url="https://api.devnet.solana.com",
        cli_url="devnet",
        database_url="sqlite://",
        master_secret=None,
        transmitter=transmitter,
    )


def test_build_transmitter_selects_by_config():
    chain = ChainClient("https://rpc.test")
    assert isinstance(build_transmitter(_settings("rpc"), chain), RpcTransmitter)
    cli = build_transmitter(_settings("cli"), chain)
    assert isinstance(cli, ExternalToolTransmitter)
    assert cli.cli_url == "devnet"
    assert cli.method == "cli"
    chain.close()

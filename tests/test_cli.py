"""
Tests for the command line shell: identifier resolution and command wiring.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from conftest import new_address

from solpay.cli import build_parser, main, parse_wallet_ref
from solpay.database.models import ByAddress, ById


def test_parse_wallet_ref():
    assert parse_wallet_ref("12") == ById(12)
    assert parse_wallet_ref(" 3 ") == ById(3)
    address = new_address()
    assert parse_wallet_ref(address) == ByAddress(address)


def test_parser_rejects_bad_amount():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["request", "1", "--amount", "lots"])


def test_generate_list_and_request(engine, capsys):
    factory = lambda settings: engine  # noqa: E731
    assert main(["generate", "--label", "shop", "--amount", "0.5"], engine_factory=factory) == 0
    out = capsys.readouterr().out
    wallet = engine.list_wallets()[0]
    assert wallet.address in out
    assert f"solana:{wallet.address}?amount=0.5&label=shop" in out

    assert main(["list"], engine_factory=factory) == 0
    assert "shop" in capsys.readouterr().out
    assert len(engine.list_payment_requests(wallet.id)) == 1


def test_send_with_yes(engine, chain, transmitter, capsys):
    wallet = engine.create_wallet().wallet
    chain.balances[wallet.address] = [5_000_000_000]
    dest = new_address()
    code = main(
        ["send", "--from", str(wallet.id), "--to", dest, "--amount", "1.5", "--yes"],
        engine_factory=lambda settings: engine,
    )
    assert code == 0
    assert transmitter.sent[0][1:] == (dest, Decimal("1.5"))
    assert transmitter.signature in capsys.readouterr().out


def test_domain_errors_exit_nonzero(engine, capsys):
    assert main(["sync", "99"], engine_factory=lambda settings: engine) == 1
    assert "Wallet not found" in capsys.readouterr().err

"""
Payment request URIs.

Builds a Solana Pay transfer URL (solana:<recipient>?amount=...) and the
QR image URL for it. QR rendering is delegated to an external image service
configured as a URL template with a {data} placeholder.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from urllib.parse import quote, urlencode

from solpay.config.settings import DEFAULT_QR_CODE_URL_TEMPLATE


@dataclass(frozen=True)
class PaymentLink:
    solana_url: str
    qr_code_url: str


def format_sol(amount: Decimal) -> str:
    """Plain decimal string without exponent or trailing zeros (e.g. 0.5, 1, 0.000000001)."""
    return format(amount.normalize(), "f")


def build_solana_pay_url(
    recipient: str,
    amount: Decimal,
    label: str = "",
    message: str = "",
) -> str:
    params: list[tuple[str, str]] = [("amount", format_sol(amount))]
    if label:
        params.append(("label", label))
    if message:
        params.append(("message", message))
    return f"solana:{recipient}?{urlencode(params, quote_via=quote)}"


def build_payment_link(
    recipient: str,
    amount: Decimal,
    label: str = "",
    message: str = "",
    *,
    qr_template: str = DEFAULT_QR_CODE_URL_TEMPLATE,
) -> PaymentLink:
    solana_url = build_solana_pay_url(recipient, amount, label, message)
    qr_url = qr_template.replace("{data}", quote(solana_url, safe=""))
    return PaymentLink(solana_url=solana_url, qr_code_url=qr_url)

"""Amount and address formatting helpers."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation

WEI_PER_ETHER = Decimal(10) ** 18


def parse_ether(amount: str | int | float | Decimal) -> str:
    """Convert a human-readable amount to a wei string (truncating).

    Raises:
        ValueError: If the amount is not a finite, non-negative number.
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc
    if not value.is_finite() or value < 0:
        raise ValueError("Invalid amount")
    wei = (value * WEI_PER_ETHER).to_integral_value(rounding=ROUND_DOWN)
    return str(int(wei))


def format_ether(wei: str | int) -> str:
    """Convert wei to a human-readable amount with at most 6 decimals."""
    value = Decimal(int(wei)) / WEI_PER_ETHER
    text = f"{value:.6f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def shorten_address(address: str) -> str:
    """0x1234...abcd form for display; short inputs are returned as-is."""
    if not address or len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"

"""Rupiah formatting for prompts and confirmation messages (id-ID style)."""

from decimal import Decimal, ROUND_HALF_UP


def format_rupiah(amount: float) -> str:
    """
    Format an amount the way id-ID renders currency.

    >>> format_rupiah(18000)
    'Rp18.000'
    >>> format_rupiah(1250.5)
    'Rp1.250,50'
    """
    quantized = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    whole, _, cents = f"{abs(quantized):,.2f}".partition(".")
    text = whole.replace(",", ".")
    if cents != "00":
        text = f"{text},{cents}"
    return f"{sign}Rp{text}"


def format_quantity(value: float) -> str:
    """Render a stock quantity without a trailing '.0' for whole numbers."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_currency(value: Decimal, *, show_sign: bool = False) -> str:
    cents = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"${abs(cents):,.2f}"
    if cents < 0:
        return f"-{text}"
    if show_sign:
        return f"+{text}"
    return text


def format_percentage(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}%"

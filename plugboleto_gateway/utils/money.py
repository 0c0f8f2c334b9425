"""Fixed-point money helpers - all amounts travel as integer cents"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

_CENT = Decimal("0.01")


def parse_cents(value: Any) -> int:
    """
    Convert a monetary value reported by PlugBoleto into integer cents.

    Accepts Brazilian formatted strings ("1.234,56"), dotted decimals ("105.50"),
    ints and floats. Floats go through str() first so 105.5 becomes exactly 10550.

    Example:
        "105,50" → 10550
        "1.234,56" → 123456
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"Invalid monetary value: {value!r}")
    if isinstance(value, int):
        return value * 100

    text = str(value).strip().replace("R$", "").strip()
    if "," in text:
        # Brazilian format: dots group thousands, comma marks decimals
        text = text.replace(".", "").replace(",", ".")

    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"Invalid monetary value: {value!r}") from e

    return int((amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


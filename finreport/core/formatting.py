"""Number formatting for the report view and the PDF grid."""
from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def _group_western(digits: str) -> str:
    return f"{int(digits):,}"


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def _format(amount: Decimal, *, decimals: int, fixed: bool, indian: bool, symbol: str = "") -> str:
    quantum = Decimal(1).scaleb(-decimals)
    rounded = amount.quantize(quantum, rounding=ROUND_HALF_EVEN)
    negative = rounded < 0
    text = f"{abs(rounded):f}"
    whole, _, fraction = text.partition(".")
    if not fixed:
        fraction = fraction.rstrip("0")
    grouped = _group_indian(whole) if indian else _group_western(whole)
    body = f"{grouped}.{fraction}" if fraction else grouped
    return f"{'-' if negative else ''}{symbol}{body}"


def format_currency(value: Any) -> str:
    """Rupee amount with Indian digit grouping and no decimals."""

    amount = _to_decimal(value)
    if amount is None:
        return "" if value is None else str(value)
    return _format(amount, decimals=0, fixed=True, indian=True, symbol="₹")


def format_number(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str) and "%" in value:
        return value
    amount = _to_decimal(value)
    if amount is None:
        return str(value)
    return _format(amount, decimals=3, fixed=False, indian=True)


def format_usd_currency(value: Any) -> str:
    amount = _to_decimal(value)
    if amount is None:
        return "" if value is None else str(value)
    return _format(amount, decimals=2, fixed=True, indian=False, symbol="$")


def format_us_number(value: Any) -> str:
    amount = _to_decimal(value)
    if amount is None:
        return "" if value is None else str(value)
    return _format(amount, decimals=3, fixed=False, indian=False)

"""Response formatting helpers."""

from __future__ import annotations

import math
import re

FINANCIAL_DISCLAIMER = "Informational use only. This is not financial advice."
CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£", "CHF": "CHF", "JPY": "¥"}
_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


def _is_missing(value: float | None) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _de_decimal(value: float, decimals: int = 2) -> str:
    # de-DE grouping: dot for thousands, comma for decimals.
    text = f"{value:,.{decimals}f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency(value: float | None, currency: str = "EUR") -> str:
    if _is_missing(value):
        return "N/A"
    if currency == "":
        return _de_decimal(value)
    code = currency.strip().upper()
    if not _CURRENCY_CODE.match(code):
        return f"{_de_decimal(value)} (Invalid Code: {currency})"
    return f"{_de_decimal(value)} {CURRENCY_SYMBOLS.get(code, code)}"


def format_percentage(value: float | None) -> str:
    if _is_missing(value):
        return "N/A"
    return f"{value:.2f}%"


def format_quantity(value: float | None) -> str:
    if _is_missing(value):
        return "N/A"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.6f}".rstrip("0").rstrip(".")


def format_response(
    title: str,
    lines: list[str],
    source: str | None = None,
    warning: str | None = None,
    include_disclaimer: bool = True,
) -> str:
    chunks: list[str] = [title]
    if source:
        chunks.append(f"Source: {source}")
    if warning:
        chunks.append(f"Warning: {warning}")
    chunks.extend(lines)
    if include_disclaimer:
        chunks.extend(["---", FINANCIAL_DISCLAIMER])
    return "\n".join(chunks)

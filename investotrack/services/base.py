"""Shared service result types and boundary validators."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Generic, TypeVar

from investotrack.providers.http import ProviderError

ISIN_PATTERN = re.compile(r"^[A-Z]{2}[A-Z0-9]{9}[0-9]$")
TICKER_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9.\-=^]{0,19}$")
T = TypeVar("T")


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    retriable: bool = True
    provider: str | None = None


@dataclass
class ServiceResult(Generic[T]):
    data: T | None
    source: str | None = None
    warning: str | None = None
    error: ErrorEnvelope | None = None
    fetched_at: float | None = None


def envelope_from_provider_error(error: ProviderError) -> ErrorEnvelope:
    retriable = error.code in {"RATE_LIMIT", "NETWORK", "UPSTREAM", "BAD_RESPONSE", "TIMEOUT"}
    return ErrorEnvelope(code=error.code, message=error.message, retriable=retriable, provider=error.provider)


def validate_isin(isin: str) -> str:
    clean = isin.strip().upper()
    if not ISIN_PATTERN.match(clean):
        raise ValueError("ISIN must be 12 chars: 2-letter country code, 9 alphanumerics, 1 check digit.")
    return clean


def validate_ticker(ticker: str | None) -> str | None:
    if ticker is None:
        return None
    clean = ticker.strip().upper()
    if not clean:
        return None
    if not TICKER_PATTERN.match(clean):
        raise ValueError("Ticker must be 1-20 chars: A-Z, 0-9, dot, hyphen, '=' or '^'.")
    return clean


def _as_finite(value: object, label: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{label} must be numeric.")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be numeric.") from None
    if not math.isfinite(number):
        raise ValueError(f"{label} must be a finite number.")
    return number


def validate_new_investment_amount(amount: object | None) -> float | None:
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        return None
    number = _as_finite(amount, "New investment amount")
    if number < 0:
        raise ValueError("New investment amount cannot be negative.")
    return number


def validate_quantity(quantity: object) -> float:
    number = _as_finite(quantity, "Quantity")
    if number < 0:
        raise ValueError("Quantity must be a non-negative number.")
    return number


def validate_target_buy_amount(amount: object) -> float:
    number = _as_finite(amount, "Target buy amount")
    if number < 0:
        raise ValueError("Target buy amount must be a non-negative number.")
    return number

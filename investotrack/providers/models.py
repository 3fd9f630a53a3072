"""Normalized data models shared across providers and the resolver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ProviderName = Literal["yahoo", "anthropic"]
ResolutionStatus = Literal["resolved", "currency_mismatch", "unavailable"]

DESCRIPTIVE_FIELDS = (
    "regular_market_change",
    "regular_market_change_percent",
    "volume",
    "average_volume",
    "market_cap",
    "pe_ratio",
    "eps",
    "fifty_two_week_low",
    "fifty_two_week_high",
    "ter",
    "fund_size",
    "category_name",
)


@dataclass(frozen=True)
class NormalizedQuote:
    symbol: str
    price: float | None
    currency: str | None
    exchange: str | None = None
    regular_market_change: float | None = None
    regular_market_change_percent: float | None = None
    volume: float | None = None
    average_volume: float | None = None
    market_cap: float | None = None
    pe_ratio: float | None = None
    eps: float | None = None
    fifty_two_week_low: float | None = None
    fifty_two_week_high: float | None = None
    ter: float | None = None
    fund_size: float | None = None
    category_name: str | None = None
    source: ProviderName = "yahoo"


@dataclass(frozen=True)
class SearchCandidate:
    symbol: str
    isin: str | None = None
    exchange: str | None = None
    currency: str | None = None
    price: float | None = None
    name: str | None = None
    quote_type: str | None = None


@dataclass(frozen=True)
class QuoteRequest:
    isin: str
    id: str
    ticker: str | None = None


@dataclass(frozen=True)
class QuoteResult:
    """Outcome of resolving one holding.

    ``current_price`` and ``currency`` are only set when a quote in the
    required currency was accepted. ``quoted_currency`` keeps the currency of
    the best rejected quote so callers can report a mismatch.
    """

    id: str
    isin: str
    current_price: float | None = None
    currency: str | None = None
    symbol: str | None = None
    exchange: str | None = None
    quoted_currency: str | None = None
    regular_market_change: float | None = None
    regular_market_change_percent: float | None = None
    volume: float | None = None
    average_volume: float | None = None
    market_cap: float | None = None
    pe_ratio: float | None = None
    eps: float | None = None
    fifty_two_week_low: float | None = None
    fifty_two_week_high: float | None = None
    ter: float | None = None
    fund_size: float | None = None
    category_name: str | None = None

    @property
    def status(self) -> ResolutionStatus:
        if self.current_price is not None:
            return "resolved"
        if self.quoted_currency:
            return "currency_mismatch"
        return "unavailable"

"""Yahoo Finance adapter with normalized outputs."""

from __future__ import annotations

import logging
import math
from typing import Any
from urllib.parse import quote_plus

import yfinance as yf

from investotrack.providers.http import ProviderError, fetch_json
from investotrack.providers.models import NormalizedQuote, SearchCandidate

LOGGER = logging.getLogger(__name__)
SEARCH_URL = "https://query2.finance.yahoo.com/v1/finance/search"


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    clean = value.strip()
    return clean or None


def _ter_percent(info: dict[str, Any]) -> float | None:
    # netExpenseRatio is already a percent; annualReportExpenseRatio is a fraction.
    net = _number(info.get("netExpenseRatio"))
    if net is not None:
        return net
    annual = _number(info.get("annualReportExpenseRatio"))
    return annual * 100.0 if annual is not None else None


def quote_from_info(symbol: str, info: dict[str, Any]) -> NormalizedQuote | None:
    """Normalize a yfinance ``Ticker.info`` mapping; ``None`` when Yahoo knows nothing about it."""
    price = _number(info.get("regularMarketPrice"))
    if price is None:
        price = _number(info.get("currentPrice"))
    currency = _text(info.get("currency"))
    if price is None and currency is None and not info.get("quoteType"):
        return None
    return NormalizedQuote(
        symbol=_text(info.get("symbol")) or symbol,
        price=price,
        currency=currency,
        exchange=_text(info.get("exchange")),
        regular_market_change=_number(info.get("regularMarketChange")),
        regular_market_change_percent=_number(info.get("regularMarketChangePercent")),
        volume=_number(info.get("regularMarketVolume")),
        average_volume=_number(info.get("averageDailyVolume10Day")),
        market_cap=_number(info.get("marketCap")),
        pe_ratio=_number(info.get("trailingPE")),
        eps=_number(info.get("epsTrailingTwelveMonths")),
        fifty_two_week_low=_number(info.get("fiftyTwoWeekLow")),
        fifty_two_week_high=_number(info.get("fiftyTwoWeekHigh")),
        ter=_ter_percent(info),
        fund_size=_number(info.get("totalAssets")),
        category_name=_text(info.get("category")),
        source="yahoo",
    )


def candidate_from_search_item(item: dict[str, Any]) -> SearchCandidate | None:
    symbol = _text(item.get("symbol"))
    if not symbol:
        return None
    return SearchCandidate(
        symbol=symbol,
        isin=_text(item.get("isin")),
        exchange=_text(item.get("exchange")),
        currency=_text(item.get("currency")),
        price=_number(item.get("regularMarketPrice")),
        name=_text(item.get("shortname")) or _text(item.get("longname")),
        quote_type=_text(item.get("quoteType")),
    )


class YahooFinanceClient:
    """Blocking Yahoo Finance client; the resolver runs it in worker threads."""

    def __init__(self, timeout_seconds: float = 10.0, max_retries: int = 1) -> None:
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries

    def get_quote(self, symbol: str) -> NormalizedQuote | None:
        try:
            info = yf.Ticker(symbol).info
        except Exception as error:
            raise ProviderError("yahoo", "UPSTREAM", f"Quote lookup failed for {symbol}: {error}") from error
        if not isinstance(info, dict) or not info:
            return None
        return quote_from_info(symbol, info)

    def search(self, text: str, limit: int = 10) -> list[SearchCandidate]:
        query = text.strip()
        if not query:
            return []
        url = f"{SEARCH_URL}?q={quote_plus(query)}&quotesCount={max(1, limit)}&newsCount=0"
        data = fetch_json(url, provider="yahoo", timeout_seconds=self.timeout_seconds, max_retries=self.max_retries)
        items = (data or {}).get("quotes") or []
        if not isinstance(items, list):
            raise ProviderError("yahoo", "BAD_RESPONSE", "Search response has no quote list.")
        candidates = [candidate_from_search_item(item) for item in items if isinstance(item, dict)]
        found = [candidate for candidate in candidates if candidate is not None]
        LOGGER.debug("yahoo search complete: query=%s candidates=%s", query, len(found))
        return found

"""ISIN to settlement-currency quote resolution with an ordered fallback chain."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Protocol, TypeVar

from investotrack.providers.http import ProviderError
from investotrack.providers.models import (
    DESCRIPTIVE_FIELDS,
    NormalizedQuote,
    QuoteRequest,
    QuoteResult,
    SearchCandidate,
)

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)
DEFAULT_REQUIRED_CURRENCY = "EUR"
DEFAULT_HOME_EXCHANGES = ("PAR", "AMS", "BRU", "LIS")
DEFAULT_TIMEOUT_SECONDS = 10.0


class QuoteClient(Protocol):
    def get_quote(self, symbol: str) -> NormalizedQuote | None: ...

    def search(self, text: str) -> list[SearchCandidate]: ...


@dataclass(frozen=True)
class AttemptOutcome:
    accepted: bool
    quote: NormalizedQuote | None = None
    # False for a search hit whose ISIN was not confirmed; such a quote is metadata only.
    trusted: bool = True


@dataclass(frozen=True)
class ResolutionAttempt:
    step: str
    symbol: str | None
    call: Callable[[], Awaitable[AttemptOutcome]]


@dataclass(frozen=True)
class AttemptTrace:
    isin: str
    step: str
    symbol: str | None
    accepted: bool
    price: float | None
    currency: str | None
    latency_ms: float
    error: str | None = None


AttemptObserver = Callable[[AttemptTrace], None]


class QuoteResolver:
    """Turns a ``QuoteRequest`` into a ``QuoteResult`` priced in one currency.

    Steps run in order and stop at the first accepted quote: preferred
    ticker, ISIN used as a symbol, then a text search on the ISIN. Every
    provider call is isolated; a failing step counts as "no result" and the
    chain moves on. ``resolve`` never raises.
    """

    def __init__(
        self,
        client: QuoteClient,
        required_currency: str = DEFAULT_REQUIRED_CURRENCY,
        home_exchanges: Iterable[str] = DEFAULT_HOME_EXCHANGES,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        observer: AttemptObserver | None = None,
    ) -> None:
        self._client = client
        self.required_currency = required_currency.strip().upper()
        self.home_exchanges = frozenset(exchange.strip().upper() for exchange in home_exchanges if exchange.strip())
        self.timeout_seconds = timeout_seconds
        self._observer = observer

    def currency_matches(self, currency: str | None) -> bool:
        return bool(currency) and currency.strip().upper() == self.required_currency

    def is_acceptable(self, quote: NormalizedQuote | None) -> bool:
        if quote is None or quote.price is None:
            return False
        if not math.isfinite(quote.price) or quote.price <= 0:
            return False
        return self.currency_matches(quote.currency)

    def select_candidate(
        self,
        candidates: list[SearchCandidate],
        isin: str,
        preferred_ticker: str | None = None,
    ) -> tuple[SearchCandidate | None, bool]:
        """Pick the best search candidate and whether its quote may be trusted for a price."""
        wanted = isin.strip().upper()
        ticker = (preferred_ticker or "").strip().upper()
        exact = [
            candidate
            for candidate in candidates
            if (candidate.isin or "").upper() == wanted and self.currency_matches(candidate.currency)
        ]
        for candidate in exact:
            if (candidate.exchange or "").upper() in self.home_exchanges:
                return candidate, True
        if ticker:
            for candidate in exact:
                if candidate.symbol.upper() == ticker:
                    return candidate, True
        if exact:
            return exact[0], True
        for candidate in candidates:
            if candidate.price is not None and candidate.currency:
                return candidate, False
        return None, False

    async def _call(self, func: Callable[..., T], *args: object) -> T:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.timeout_seconds)

    async def _quote_attempt(self, symbol: str) -> AttemptOutcome:
        quote = await self._call(self._client.get_quote, symbol)
        return AttemptOutcome(accepted=self.is_acceptable(quote), quote=quote)

    async def _search_attempt(self, isin: str, preferred_ticker: str | None) -> AttemptOutcome:
        candidates = await self._call(self._client.search, isin)
        candidate, trusted = self.select_candidate(list(candidates or []), isin, preferred_ticker)
        if candidate is None:
            LOGGER.info("resolver search found no usable candidate: isin=%s candidates=%s", isin, len(candidates or []))
            return AttemptOutcome(accepted=False)
        quote = await self._call(self._client.get_quote, candidate.symbol)
        return AttemptOutcome(accepted=trusted and self.is_acceptable(quote), quote=quote, trusted=trusted)

    def _attempts(self, request: QuoteRequest) -> list[ResolutionAttempt]:
        attempts: list[ResolutionAttempt] = []
        if request.ticker:
            attempts.append(
                ResolutionAttempt("preferred_ticker", request.ticker, lambda: self._quote_attempt(request.ticker or ""))
            )
        attempts.append(ResolutionAttempt("isin_symbol", request.isin, lambda: self._quote_attempt(request.isin)))
        attempts.append(
            ResolutionAttempt("isin_search", request.isin, lambda: self._search_attempt(request.isin, request.ticker))
        )
        return attempts

    async def resolve(self, request: QuoteRequest) -> QuoteResult:
        best: NormalizedQuote | None = None
        for attempt in self._attempts(request):
            started = time.perf_counter()
            outcome = AttemptOutcome(accepted=False)
            error_code: str | None = None
            try:
                outcome = await attempt.call()
            except ProviderError as error:
                error_code = error.code
                LOGGER.warning(
                    "resolver attempt failed: isin=%s step=%s symbol=%s code=%s status=%s",
                    request.isin,
                    attempt.step,
                    attempt.symbol,
                    error.code,
                    error.status,
                )
            except asyncio.TimeoutError:
                error_code = "TIMEOUT"
                LOGGER.warning(
                    "resolver attempt timed out: isin=%s step=%s symbol=%s timeout_s=%s",
                    request.isin,
                    attempt.step,
                    attempt.symbol,
                    self.timeout_seconds,
                )
            except Exception:
                error_code = "UNEXPECTED"
                LOGGER.exception(
                    "resolver attempt unexpected failure: isin=%s step=%s symbol=%s",
                    request.isin,
                    attempt.step,
                    attempt.symbol,
                )
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            quote = outcome.quote
            LOGGER.info(
                "resolver attempt complete: isin=%s step=%s symbol=%s accepted=%s price=%s currency=%s latency_ms=%s",
                request.isin,
                attempt.step,
                quote.symbol if quote else attempt.symbol,
                outcome.accepted,
                quote.price if quote else None,
                quote.currency if quote else None,
                elapsed_ms,
            )
            self._notify(
                AttemptTrace(
                    isin=request.isin,
                    step=attempt.step,
                    symbol=quote.symbol if quote else attempt.symbol,
                    accepted=outcome.accepted,
                    price=quote.price if quote else None,
                    currency=quote.currency if quote else None,
                    latency_ms=elapsed_ms,
                    error=error_code,
                )
            )
            if outcome.accepted and quote is not None:
                return self._accepted_result(request, quote)
            if quote is not None and (outcome.trusted or best is None):
                best = quote

        LOGGER.warning(
            "resolver found no %s price: isin=%s fallback_symbol=%s fallback_currency=%s",
            self.required_currency,
            request.isin,
            best.symbol if best else request.ticker,
            best.currency if best else None,
        )
        return self._unresolved_result(request, best)

    async def resolve_many(self, requests: list[QuoteRequest]) -> list[QuoteResult]:
        if not requests:
            return []
        return list(await asyncio.gather(*(self.resolve(request) for request in requests)))

    def _notify(self, trace: AttemptTrace) -> None:
        if self._observer is None:
            return
        try:
            self._observer(trace)
        except Exception:
            LOGGER.exception("resolver observer failed: isin=%s step=%s", trace.isin, trace.step)

    @staticmethod
    def _descriptive(quote: NormalizedQuote) -> dict[str, object]:
        return {name: getattr(quote, name) for name in DESCRIPTIVE_FIELDS}

    def _accepted_result(self, request: QuoteRequest, quote: NormalizedQuote) -> QuoteResult:
        return QuoteResult(
            id=request.id,
            isin=request.isin,
            current_price=quote.price,
            currency=self.required_currency,
            symbol=quote.symbol,
            exchange=quote.exchange,
            **self._descriptive(quote),
        )

    def _unresolved_result(self, request: QuoteRequest, best: NormalizedQuote | None) -> QuoteResult:
        if best is None:
            return QuoteResult(id=request.id, isin=request.isin, symbol=request.ticker)
        mismatch = best.currency.strip().upper() if best.currency and not self.currency_matches(best.currency) else None
        return QuoteResult(
            id=request.id,
            isin=request.isin,
            symbol=best.symbol or request.ticker,
            exchange=best.exchange,
            quoted_currency=mismatch,
            **self._descriptive(best),
        )

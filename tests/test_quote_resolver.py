import asyncio
import time

from investotrack.providers.http import ProviderError
from investotrack.providers.models import NormalizedQuote, QuoteRequest, SearchCandidate
from investotrack.services.quote_resolver import AttemptTrace, QuoteResolver

ISIN = "IE00B4K6B022"


class _FakeQuoteClient:
    def __init__(
        self,
        quotes: dict[str, NormalizedQuote | Exception | None] | None = None,
        candidates: list[SearchCandidate] | Exception | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self.quotes = quotes or {}
        self.candidates = candidates if candidates is not None else []
        self.delay_seconds = delay_seconds
        self.quote_calls: list[str] = []
        self.search_calls: list[str] = []

    def get_quote(self, symbol: str) -> NormalizedQuote | None:
        self.quote_calls.append(symbol)
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        value = self.quotes.get(symbol)
        if isinstance(value, Exception):
            raise value
        return value

    def search(self, text: str) -> list[SearchCandidate]:
        self.search_calls.append(text)
        if isinstance(self.candidates, Exception):
            raise self.candidates
        return self.candidates


def _quote(symbol: str, price: float | None, currency: str | None, exchange: str | None = "PAR") -> NormalizedQuote:
    return NormalizedQuote(symbol=symbol, price=price, currency=currency, exchange=exchange, volume=1200.0)


def _resolve(resolver: QuoteResolver, ticker: str | None = None):
    return asyncio.run(resolver.resolve(QuoteRequest(isin=ISIN, id=ISIN, ticker=ticker)))


def test_preferred_ticker_in_required_currency_is_used_first() -> None:
    client = _FakeQuoteClient(quotes={"50E.PA": _quote("50E.PA", 57.6, "EUR")})
    result = _resolve(QuoteResolver(client), ticker="50E.PA")

    assert result.status == "resolved"
    assert result.current_price == 57.6
    assert result.currency == "EUR"
    assert result.symbol == "50E.PA"
    assert result.exchange == "PAR"
    assert result.volume == 1200.0
    assert client.quote_calls == ["50E.PA"]
    assert client.search_calls == []


def test_currency_match_is_case_insensitive() -> None:
    client = _FakeQuoteClient(quotes={"50E.PA": _quote("50E.PA", 57.6, "eur")})
    result = _resolve(QuoteResolver(client), ticker="50E.PA")
    assert result.current_price == 57.6
    assert result.currency == "EUR"


def test_non_eur_preferred_ticker_falls_through_to_home_exchange_search_hit() -> None:
    client = _FakeQuoteClient(
        quotes={
            "XYZ.L": _quote("XYZ.L", 48.0, "GBP", "LSE"),
            "XYZ.DE": _quote("XYZ.DE", 56.0, "EUR", "GER"),
            "XYZ.PA": _quote("XYZ.PA", 57.0, "EUR", "PAR"),
        },
        candidates=[
            SearchCandidate(symbol="XYZ.DE", isin=ISIN, exchange="GER", currency="EUR", price=56.0),
            SearchCandidate(symbol="XYZ.PA", isin=ISIN, exchange="PAR", currency="EUR", price=57.0),
        ],
    )
    result = _resolve(QuoteResolver(client), ticker="XYZ.L")

    assert result.status == "resolved"
    assert result.current_price == 57.0
    assert result.symbol == "XYZ.PA"
    assert result.exchange == "PAR"
    assert client.search_calls == [ISIN]


def test_non_eur_quotes_only_report_currency_mismatch_with_metadata() -> None:
    client = _FakeQuoteClient(
        quotes={"XYZ.L": _quote("XYZ.L", 48.0, "GBP", "LSE"), ISIN: None},
        candidates=[],
    )
    result = _resolve(QuoteResolver(client), ticker="XYZ.L")

    assert result.status == "currency_mismatch"
    assert result.current_price is None
    assert result.currency is None
    assert result.quoted_currency == "GBP"
    assert result.symbol == "XYZ.L"
    assert result.exchange == "LSE"
    assert result.volume == 1200.0


def test_zero_price_is_rejected_and_chain_continues() -> None:
    client = _FakeQuoteClient(
        quotes={"50E.PA": _quote("50E.PA", 0.0, "EUR"), ISIN: _quote(ISIN, 57.6, "EUR")},
    )
    result = _resolve(QuoteResolver(client), ticker="50E.PA")
    assert result.current_price == 57.6
    assert client.quote_calls == ["50E.PA", ISIN]


def test_missing_currency_is_never_accepted() -> None:
    client = _FakeQuoteClient(quotes={ISIN: _quote(ISIN, 57.6, None)}, candidates=[])
    result = _resolve(QuoteResolver(client))
    assert result.current_price is None
    assert result.status == "unavailable"
    assert result.symbol == ISIN


def test_total_failure_keeps_identity_and_never_raises() -> None:
    client = _FakeQuoteClient(
        quotes={
            "50E.PA": ProviderError("yahoo", "UPSTREAM", "boom"),
            ISIN: RuntimeError("unexpected"),
        },
        candidates=ProviderError("yahoo", "NETWORK", "down"),
    )
    result = _resolve(QuoteResolver(client), ticker="50E.PA")

    assert result.id == ISIN
    assert result.isin == ISIN
    assert result.symbol == "50E.PA"
    assert result.status == "unavailable"


def test_search_candidate_for_other_isin_is_metadata_only() -> None:
    client = _FakeQuoteClient(
        quotes={"OTHER.PA": _quote("OTHER.PA", 12.0, "EUR")},
        candidates=[SearchCandidate(symbol="OTHER.PA", isin="FR0000000000", exchange="PAR", currency="EUR", price=12.0)],
    )
    result = _resolve(QuoteResolver(client))

    assert result.current_price is None
    assert result.symbol == "OTHER.PA"
    assert client.quote_calls == [ISIN, "OTHER.PA"]


def test_unconfirmed_search_hit_does_not_hide_earlier_currency_mismatch() -> None:
    client = _FakeQuoteClient(
        quotes={"XYZ.L": _quote("XYZ.L", 48.0, "GBP", "LSE"), "OTHER.DE": _quote("OTHER.DE", 12.0, "EUR", "GER")},
        candidates=[SearchCandidate(symbol="OTHER.DE", isin=None, exchange="GER", currency="EUR", price=12.0)],
    )
    result = _resolve(QuoteResolver(client), ticker="XYZ.L")

    assert client.quote_calls == ["XYZ.L", ISIN, "OTHER.DE"]
    assert result.status == "currency_mismatch"
    assert result.current_price is None
    assert result.quoted_currency == "GBP"
    assert result.symbol == "XYZ.L"
    assert result.exchange == "LSE"


def test_select_candidate_prefers_preferred_ticker_over_other_exchanges() -> None:
    resolver = QuoteResolver(_FakeQuoteClient())
    candidates = [
        SearchCandidate(symbol="XYZ.DE", isin=ISIN, exchange="GER", currency="EUR"),
        SearchCandidate(symbol="XYZ.MI", isin=ISIN, exchange="MIL", currency="EUR"),
    ]
    chosen, trusted = resolver.select_candidate(candidates, ISIN, preferred_ticker="xyz.mi")
    assert chosen is not None and chosen.symbol == "XYZ.MI"
    assert trusted is True

    chosen, trusted = resolver.select_candidate(candidates, ISIN)
    assert chosen is not None and chosen.symbol == "XYZ.DE"
    assert trusted is True


def test_slow_provider_call_times_out_and_chain_continues() -> None:
    client = _FakeQuoteClient(quotes={"SLOW.PA": _quote("SLOW.PA", 10.0, "EUR")}, delay_seconds=0.3)
    traces: list[AttemptTrace] = []
    resolver = QuoteResolver(client, timeout_seconds=0.05, observer=traces.append)

    result = _resolve(resolver, ticker="SLOW.PA")

    assert result.current_price is None
    assert traces[0].step == "preferred_ticker"
    assert traces[0].error == "TIMEOUT"
    assert [trace.step for trace in traces] == ["preferred_ticker", "isin_symbol", "isin_search"]


def test_observer_sees_each_attempt_and_failing_observer_is_ignored() -> None:
    client = _FakeQuoteClient(quotes={ISIN: _quote(ISIN, 57.6, "EUR")})
    traces: list[AttemptTrace] = []
    result = _resolve(QuoteResolver(client, observer=traces.append), ticker="50E.PA")

    assert result.current_price == 57.6
    assert [(trace.step, trace.accepted) for trace in traces] == [("preferred_ticker", False), ("isin_symbol", True)]

    def broken(_: AttemptTrace) -> None:
        raise RuntimeError("observer bug")

    assert _resolve(QuoteResolver(client, observer=broken)).current_price == 57.6


def test_resolve_many_preserves_order_and_empty_input() -> None:
    client = _FakeQuoteClient(
        quotes={"AAA.PA": _quote("AAA.PA", 1.0, "EUR"), "BBB.PA": _quote("BBB.PA", 2.0, "EUR")},
    )
    resolver = QuoteResolver(client)
    requests = [
        QuoteRequest(isin="FR0013412012", id="b", ticker="BBB.PA"),
        QuoteRequest(isin="LU1812092168", id="a", ticker="AAA.PA"),
    ]

    results = asyncio.run(resolver.resolve_many(requests))

    assert [result.id for result in results] == ["b", "a"]
    assert [result.current_price for result in results] == [2.0, 1.0]
    assert asyncio.run(resolver.resolve_many([])) == []

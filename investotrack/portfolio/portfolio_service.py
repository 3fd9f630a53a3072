"""Portfolio session orchestration: ingestion, price refresh and metrics."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, replace
from typing import Any, Callable

from investotrack.portfolio.advisor import RebalanceAdvisor
from investotrack.portfolio.csv_loader import load_portfolio_csv, parse_portfolio_csv
from investotrack.portfolio.metrics import compute_metrics, compute_target_allocations, summarize_portfolio
from investotrack.portfolio.models import Holding, ParsedPortfolio, RefreshReport, RoundingPolicy
from investotrack.providers.models import DESCRIPTIVE_FIELDS, QuoteRequest, QuoteResult
from investotrack.services.base import (
    ServiceResult,
    validate_new_investment_amount,
    validate_quantity,
    validate_target_buy_amount,
)
from investotrack.services.quote_resolver import QuoteResolver

LOGGER = logging.getLogger(__name__)
CURRENT_PORTFOLIO_URI = "portfolio://current"
PRICE_FIELDS = ("current_price", "current_amount", "price_source_exchange", *DESCRIPTIVE_FIELDS)


def clear_price_fields(holding: Holding) -> Holding:
    return replace(holding, **{name: None for name in PRICE_FIELDS})


def merge_quote_result(holding: Holding, result: QuoteResult) -> Holding:
    """Fold a fresh quote into a holding.

    The price is ``result.current_price`` when one was resolved, otherwise the
    previous price is kept. ``price_source_exchange`` follows whichever price
    ends up in use; descriptive fields take the new value when present.
    """
    if result.current_price is not None:
        price = result.current_price
        exchange = result.exchange
    else:
        price = holding.current_price
        exchange = holding.price_source_exchange
    descriptive = {
        name: getattr(result, name) if getattr(result, name) is not None else getattr(holding, name)
        for name in DESCRIPTIVE_FIELDS
    }
    return replace(
        holding,
        current_price=price,
        current_amount=holding.quantity * price if price is not None else None,
        price_source_exchange=exchange,
        **descriptive,
    )


class PortfolioService:
    """In-memory session around one portfolio.

    Holdings are kept as an immutable snapshot that is replaced as a whole
    after each refresh or edit; ``holdings()`` applies the metrics engine on
    read so investment parameters can change without refetching prices.
    """

    def __init__(
        self,
        resolver: QuoteResolver,
        advisor: RebalanceAdvisor | None = None,
        ticker_overrides: dict[str, str] | None = None,
        default_rounding_policy: RoundingPolicy | str = RoundingPolicy.NEAREST,
        resource_updated_callback: Callable[[str], None] | None = None,
    ) -> None:
        self._resolver = resolver
        self._advisor = advisor or RebalanceAdvisor()
        self._ticker_overrides = {isin.upper(): ticker for isin, ticker in (ticker_overrides or {}).items()}
        self._base: list[Holding] = []
        self._csv_errors: list[str] = []
        self._new_investment_amount: float | None = None
        self._rounding_policy = RoundingPolicy.parse(default_rounding_policy)
        self._refreshing = False
        self._prices_last_updated: float | None = None
        self._resource_updated_callback = resource_updated_callback

    @property
    def required_currency(self) -> str:
        return self._resolver.required_currency

    @property
    def csv_errors(self) -> list[str]:
        return list(self._csv_errors)

    @property
    def new_investment_amount(self) -> float | None:
        return self._new_investment_amount

    @property
    def rounding_policy(self) -> RoundingPolicy:
        return self._rounding_policy

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    @property
    def prices_last_updated(self) -> float | None:
        return self._prices_last_updated

    def _notify_updated(self) -> None:
        if self._resource_updated_callback is not None:
            self._resource_updated_callback(CURRENT_PORTFOLIO_URI)

    def load_parsed(self, parsed: ParsedPortfolio) -> dict[str, Any]:
        self._base = [
            clear_price_fields(replace(holding, ticker=holding.ticker or self._ticker_overrides.get(holding.isin.upper())))
            for holding in parsed.holdings
        ]
        self._csv_errors = list(parsed.csv_errors)
        self._new_investment_amount = parsed.initial_new_investment_amount
        if parsed.initial_rounding_policy is not None:
            self._rounding_policy = parsed.initial_rounding_policy
        self._prices_last_updated = None
        LOGGER.info(
            "portfolio loaded: holdings=%s csv_errors=%s new_investment=%s rounding=%s",
            len(self._base),
            len(self._csv_errors),
            self._new_investment_amount,
            self._rounding_policy.value,
        )
        self._notify_updated()
        return {
            "holdings": len(self._base),
            "csv_errors": self.csv_errors,
            "new_investment_amount": self._new_investment_amount,
            "rounding_policy": self._rounding_policy.value,
        }

    def load_csv_text(self, content: str) -> dict[str, Any]:
        return self.load_parsed(parse_portfolio_csv(content))

    def load_csv_file(self, file_path: str) -> dict[str, Any]:
        return self.load_parsed(load_portfolio_csv(file_path))

    def quote_requests(self) -> list[QuoteRequest]:
        return [QuoteRequest(isin=holding.isin, id=holding.id, ticker=holding.ticker) for holding in self._base]

    async def refresh_prices(self) -> RefreshReport:
        if self._refreshing:
            LOGGER.info("price refresh already in progress; request dropped")
            return RefreshReport(skipped=True)
        self._refreshing = True
        try:
            requests = self.quote_requests()
            if not requests:
                LOGGER.info("price refresh skipped: portfolio is empty")
                return RefreshReport()
            results = await self._resolver.resolve_many(requests)
            return self.apply_quote_results(results)
        finally:
            self._refreshing = False

    def apply_quote_results(self, results: list[QuoteResult]) -> RefreshReport:
        report = RefreshReport(requested=len(results))
        by_id = {result.id: result for result in results}
        merged: list[Holding] = []
        for holding in self._base:
            result = by_id.get(holding.id)
            if result is None:
                merged.append(holding)
                continue
            label = result.symbol or holding.ticker or holding.isin
            if result.current_price is not None and (result.currency or "").upper() != self.required_currency:
                report.currency_mismatch.append(
                    f"{holding.name} ({label}) received a {result.currency} price; price not updated."
                )
                result = replace(result, current_price=None, currency=None)
            elif result.status == "resolved":
                report.updated += 1
            elif result.status == "currency_mismatch":
                report.currency_mismatch.append(
                    f"{holding.name} ({label}) is only quoted in {result.quoted_currency}, "
                    f"not {self.required_currency}; price not updated."
                )
            else:
                report.not_found.append(
                    f"Could not find {self.required_currency} price for {holding.name} "
                    f"(ISIN: {holding.isin}, Symbol: {label}, Reported Exchange: {result.exchange or 'N/A'})."
                )
            merged.append(merge_quote_result(holding, result))

        self._base = merged
        if report.updated:
            self._prices_last_updated = time.time()
        report.refreshed_at = self._prices_last_updated
        LOGGER.info(
            "price refresh complete: requested=%s updated=%s not_found=%s currency_mismatch=%s",
            report.requested,
            report.updated,
            len(report.not_found),
            len(report.currency_mismatch),
        )
        self._notify_updated()
        return report

    def set_new_investment_amount(self, amount: object | None) -> float | None:
        self._new_investment_amount = validate_new_investment_amount(amount)
        return self._new_investment_amount

    def set_rounding_policy(self, policy: RoundingPolicy | str) -> RoundingPolicy:
        self._rounding_policy = RoundingPolicy.parse(policy)
        return self._rounding_policy

    def _find_index(self, holding_id: str) -> int:
        for idx, holding in enumerate(self._base):
            if holding.id == holding_id:
                return idx
        raise ValueError(f"Unknown holding id: {holding_id}")

    def update_quantity(self, holding_id: str, quantity: object) -> Holding:
        new_quantity = validate_quantity(quantity)
        idx = self._find_index(holding_id)
        holding = self._base[idx]
        updated = replace(
            holding,
            quantity=new_quantity,
            current_amount=new_quantity * holding.current_price if holding.current_price is not None else None,
        )
        self._base = [*self._base[:idx], updated, *self._base[idx + 1 :]]
        LOGGER.info(
            "holding quantity updated in session only (not persisted): id=%s quantity=%s",
            holding_id,
            new_quantity,
        )
        self._notify_updated()
        return updated

    def update_target_buy_amount(self, holding_id: str, amount: object) -> Holding:
        new_amount = validate_target_buy_amount(amount)
        idx = self._find_index(holding_id)
        edited = [*self._base]
        edited[idx] = replace(edited[idx], target_buy_amount=new_amount)
        self._base = compute_target_allocations(edited)
        self._notify_updated()
        return self._base[idx]

    def holdings(self) -> list[Holding]:
        return compute_metrics(self._base, self._new_investment_amount, self._rounding_policy)

    def summary(self) -> dict[str, Any]:
        return summarize_portfolio(self.holdings(), self._new_investment_amount)

    def snapshot(self) -> dict[str, Any]:
        holdings = self.holdings()
        return {
            "uri": CURRENT_PORTFOLIO_URI,
            "required_currency": self.required_currency,
            "new_investment_amount": self._new_investment_amount,
            "rounding_policy": self._rounding_policy.value,
            "prices_last_updated": self._prices_last_updated,
            "csv_errors": self.csv_errors,
            "holdings": [asdict(holding) for holding in holdings],
            "summary": summarize_portfolio(holdings, self._new_investment_amount),
        }

    async def rebalancing_suggestions(self) -> ServiceResult[str]:
        return await self._advisor.suggest(self.holdings(), self._new_investment_amount)

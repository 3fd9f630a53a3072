"""Portfolio-domain MCP tools."""

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from dataclasses import asdict
from typing import TYPE_CHECKING, Iterator

from mcp.server.fastmcp import FastMCP

from investotrack.providers.models import QuoteRequest
from investotrack.runtime.monitoring import log_tool_event
from investotrack.services.base import validate_isin, validate_ticker

if TYPE_CHECKING:
    from investotrack.tools.registry import ToolServices


def _ok_payload(data: object, source: str | None = None, warning: str | None = None) -> str:
    payload: dict[str, object] = {"data": data}
    if source:
        payload["source"] = source
    if warning:
        payload["warning"] = warning
    return json.dumps(payload, ensure_ascii=True, default=str)


def _error_payload(message: str) -> str:
    return json.dumps({"error": message}, ensure_ascii=True)


@contextmanager
def _tracked(services: ToolServices, tool: str, subject: str | None = None) -> Iterator[None]:
    started = time.perf_counter()
    success = False
    try:
        yield
        success = True
    finally:
        latency_ms = (time.perf_counter() - started) * 1000.0
        log_tool_event(tool=tool, subject=subject, latency_ms=latency_ms, success=success)
        services.metrics.record(tool, latency_ms=latency_ms, success=success)


def register_portfolio_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Load a portfolio from CSV text exported from the tracking sheet.")
    def load_portfolio_csv(csv_text: str) -> str:
        with _tracked(services, "load_portfolio_csv"):
            return _ok_payload(services.portfolio.load_csv_text(csv_text))

    @mcp.tool(description="Load a portfolio from a .csv file on the server.")
    def load_portfolio_file(file_path: str) -> str:
        with _tracked(services, "load_portfolio_file", file_path):
            try:
                loaded = services.portfolio.load_csv_file(file_path)
            except OSError as error:
                return _error_payload(f"Could not read portfolio file: {error.strerror or error}")
            return _ok_payload(loaded)

    @mcp.tool(description="Fetch live prices in the settlement currency for every holding.")
    async def refresh_prices() -> str:
        with _tracked(services, "refresh_prices"):
            report = await services.portfolio.refresh_prices()
            warning = "A price refresh is already running; this request was ignored." if report.skipped else None
            return _ok_payload(asdict(report), warning=warning)

    @mcp.tool(description="List holdings with allocation and new-investment metrics applied.")
    def get_holdings() -> str:
        with _tracked(services, "get_holdings"):
            return _ok_payload([asdict(holding) for holding in services.portfolio.holdings()])

    @mcp.tool(description="Portfolio totals, target value and target-versus-actual allocation.")
    def get_portfolio_summary() -> str:
        with _tracked(services, "get_portfolio_summary"):
            return _ok_payload(services.portfolio.summary())

    @mcp.tool(description="Set or clear (omit the amount) the amount of new money to invest.")
    def set_new_investment_amount(amount: float | None = None) -> str:
        with _tracked(services, "set_new_investment_amount"):
            value = services.portfolio.set_new_investment_amount(amount)
            return _ok_payload({"new_investment_amount": value, "summary": services.portfolio.summary()})

    @mcp.tool(description="Set how fractional units to buy are rounded: up, down or nearest.")
    def set_rounding_policy(policy: str) -> str:
        with _tracked(services, "set_rounding_policy", policy):
            value = services.portfolio.set_rounding_policy(policy)
            return _ok_payload({"rounding_policy": value.value})

    @mcp.tool(description="Change the quantity held for one holding (session only, not saved to the CSV).")
    def update_holding_quantity(holding_id: str, quantity: float) -> str:
        holding_id = holding_id.strip().upper()
        with _tracked(services, "update_holding_quantity", holding_id):
            holding = services.portfolio.update_quantity(holding_id, quantity)
            return _ok_payload(asdict(holding), warning="Quantity changes are kept for this session only.")

    @mcp.tool(description="Change the target buy amount of one holding and recompute target allocations.")
    def update_target_buy_amount(holding_id: str, amount: float) -> str:
        holding_id = holding_id.strip().upper()
        with _tracked(services, "update_target_buy_amount", holding_id):
            holding = services.portfolio.update_target_buy_amount(holding_id, amount)
            return _ok_payload(asdict(holding))

    @mcp.tool(description="Resolve one ISIN (and optional preferred ticker) to a settlement-currency price.")
    async def resolve_quote(isin: str, ticker: str | None = None) -> str:
        isin = validate_isin(isin)
        ticker = validate_ticker(ticker)
        with _tracked(services, "resolve_quote", isin):
            result = await services.resolver.resolve(QuoteRequest(isin=isin, id=isin, ticker=ticker))
            data = {**asdict(result), "status": result.status}
            warning = None
            if result.status == "currency_mismatch":
                warning = f"Only a {result.quoted_currency} quote was found; no {services.resolver.required_currency} price."
            elif result.status == "unavailable":
                warning = f"No {services.resolver.required_currency} price found for {isin}."
            return _ok_payload(data, source="yahoo", warning=warning)

    @mcp.tool(description="Suggest how to rebalance toward target allocation, optionally using AI.")
    async def get_rebalancing_suggestions() -> str:
        with _tracked(services, "get_rebalancing_suggestions"):
            result = await services.portfolio.rebalancing_suggestions()
            if result.data is None:
                return _error_payload("Rebalancing suggestions are unavailable right now.")
            return _ok_payload(result.data, result.source, result.warning)

"""Domain tool registry entrypoint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from mcp.server.fastmcp import FastMCP

from investotrack.config.settings import Settings
from investotrack.portfolio.advisor import RebalanceAdvisor
from investotrack.portfolio.portfolio_service import PortfolioService
from investotrack.providers.anthropic_client import AnthropicClient
from investotrack.runtime.monitoring import ServerMetrics
from investotrack.services.quote_resolver import QuoteClient, QuoteResolver
from investotrack.tools.portfolio_tools import register_portfolio_tools


@dataclass
class ToolServices:
    portfolio: PortfolioService
    resolver: QuoteResolver
    metrics: ServerMetrics = field(default_factory=ServerMetrics)


def build_tool_services(
    settings: Settings,
    quote_client: QuoteClient,
    anthropic_client: AnthropicClient | None = None,
    portfolio_resource_updated_callback: Callable[[str], None] | None = None,
) -> ToolServices:
    resolver = QuoteResolver(
        quote_client,
        required_currency=settings.required_currency,
        home_exchanges=settings.home_exchanges,
        timeout_seconds=settings.quote_timeout_seconds,
    )
    advisor = RebalanceAdvisor(anthropic_client, enabled=settings.portfolio_enable_ai_suggestions)
    portfolio = PortfolioService(
        resolver,
        advisor=advisor,
        ticker_overrides=settings.ticker_overrides,
        default_rounding_policy=settings.default_rounding_policy,
        resource_updated_callback=portfolio_resource_updated_callback,
    )
    return ToolServices(portfolio=portfolio, resolver=resolver)


def register_all_tools(mcp: FastMCP, services: ToolServices) -> None:
    register_portfolio_tools(mcp, services)

"""Application entrypoint for the InvestoTrack MCP server."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Callable

from mcp.server.fastmcp import FastMCP
from starlette.responses import JSONResponse, Response

from investotrack.config.settings import Settings, get_settings
from investotrack.portfolio.sample_data import SAMPLE_PORTFOLIO_CSV
from investotrack.prompts.portfolio_prompts import register_portfolio_prompts
from investotrack.providers.anthropic_client import AnthropicClient
from investotrack.providers.yahoo_finance import YahooFinanceClient
from investotrack.resources.portfolio_resources import register_portfolio_resources
from investotrack.tools.registry import ToolServices, build_tool_services, register_all_tools

LOGGER = logging.getLogger(__name__)


def resolve_transport_mode(configured_mode: str) -> str:
    if os.getenv("RENDER") and configured_mode == "stdio":
        return "http"
    if configured_mode in {"stdio", "http"}:
        return configured_mode
    if os.getenv("RENDER") or os.getenv("PORT"):
        return "http"
    return "stdio"


def resolve_http_transport(configured_transport: str) -> str:
    if configured_transport in {"sse", "streamable"}:
        return configured_transport
    return "sse"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def resource_updated_notifier(mcp: FastMCP) -> Callable[[str], None]:
    """Push ``resources/updated`` to the client whose tool call changed the portfolio."""

    def notify(uri: str) -> None:
        try:
            session = mcp.get_context().session
            loop = asyncio.get_running_loop()
        except (ValueError, RuntimeError):
            return
        loop.create_task(session.send_resource_updated(uri))

    return notify


def load_initial_portfolio(services: ToolServices, settings: Settings) -> None:
    if settings.portfolio_csv_path:
        try:
            services.portfolio.load_csv_file(settings.portfolio_csv_path)
            return
        except (OSError, ValueError) as error:
            LOGGER.warning(
                "portfolio csv unusable, falling back to bundled sample: path=%s error=%s",
                settings.portfolio_csv_path,
                error,
            )
    services.portfolio.load_csv_text(SAMPLE_PORTFOLIO_CSV)


def build_quote_client(settings: Settings) -> YahooFinanceClient:
    # Provider calls must finish within the resolver timeout; abandoned worker threads keep running.
    return YahooFinanceClient(min(settings.request_timeout_seconds, settings.quote_timeout_seconds), max_retries=1)


async def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    yahoo_client = build_quote_client(settings)
    anthropic_client = (
        AnthropicClient(settings.claude_api_key, settings.claude_model, settings.request_timeout_seconds)
        if settings.claude_api_key and settings.portfolio_enable_ai_suggestions
        else None
    )
    mcp = FastMCP(
        name=settings.app_name,
        host=settings.host,
        port=settings.port,
        streamable_http_path=settings.mcp_path,
    )
    services = build_tool_services(
        settings,
        yahoo_client,
        anthropic_client,
        portfolio_resource_updated_callback=resource_updated_notifier(mcp),
    )
    load_initial_portfolio(services, settings)
    register_all_tools(mcp, services)
    register_portfolio_prompts(mcp)
    register_portfolio_resources(mcp, services)
    resolved_mode = resolve_transport_mode(settings.transport_mode)
    resolved_http_transport = resolve_http_transport(settings.http_transport)

    @mcp.custom_route(settings.health_path, methods=["GET"])
    async def health_check(_: object) -> Response:
        return JSONResponse(
            {
                "status": "ok",
                "service": settings.app_name,
                "version": settings.app_version,
                "mode": resolved_mode,
                "required_currency": settings.required_currency,
                "holdings": len(services.portfolio.holdings()),
                "refreshing": services.portfolio.is_refreshing,
                "prices_last_updated": services.portfolio.prices_last_updated,
                "ai_suggestions": anthropic_client is not None,
                "metrics": services.metrics.snapshot(),
            }
        )

    if anthropic_client is None:
        LOGGER.info("AI suggestions disabled: set CLAUDE_API_KEY to enable; rule-based suggestions are used")
    LOGGER.info(
        "server starting: mode=%s http_transport=%s currency=%s",
        resolved_mode,
        resolved_http_transport,
        settings.required_currency,
    )
    if resolved_mode == "stdio":
        await mcp.run_stdio_async()
    elif resolved_http_transport == "streamable":
        await mcp.run_streamable_http_async()
    else:
        await mcp.run_sse_async()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()

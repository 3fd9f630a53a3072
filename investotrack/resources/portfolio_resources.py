"""Portfolio resource definitions."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from investotrack.portfolio.portfolio_service import CURRENT_PORTFOLIO_URI

if TYPE_CHECKING:
    from investotrack.tools.registry import ToolServices


def register_portfolio_resources(mcp: FastMCP, services: "ToolServices") -> None:
    @mcp.resource(
        CURRENT_PORTFOLIO_URI,
        name="current-portfolio",
        title="Current Portfolio Snapshot",
        description="Holdings with live prices and allocation metrics for the loaded portfolio.",
        mime_type="application/json",
    )
    def current_portfolio_resource() -> str:
        snapshot = services.portfolio.snapshot()
        if not snapshot["holdings"]:
            raise ValueError("Portfolio resource not found. Load a portfolio first.")
        return json.dumps(snapshot, ensure_ascii=True, default=str)

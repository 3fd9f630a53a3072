"""Portfolio prompt definitions."""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from investotrack.lib.formatters import format_currency
from investotrack.services.base import validate_new_investment_amount


def _build_rebalance_review_prompt(new_investment_amount: str = "") -> str:
    amount = validate_new_investment_amount(new_investment_amount)
    if amount:
        money_step = (
            f"3) Call set_new_investment_amount with {amount:g} and explain how "
            f"{format_currency(amount)} should be split across holdings, in whole units\n"
        )
    else:
        money_step = "3) No new money is planned; explain which holdings drift most from target\n"
    return (
        "You are reviewing a long-term ETF portfolio priced in euros.\n"
        "1) Call refresh_prices and mention any holding whose price could not be found\n"
        "2) Call get_portfolio_summary and list overweight and underweight holdings versus target\n"
        f"{money_step}"
        "4) Call get_rebalancing_suggestions and summarize the plan in a short checklist.\n"
        "Never recommend selling unless a holding is far above target."
    )


def register_portfolio_prompts(mcp: FastMCP) -> None:
    @mcp.prompt(
        name="rebalance_review",
        title="Rebalance Review Prompt",
        description="Walk through a price refresh, allocation drift review and new-money split.",
    )
    def rebalance_review(new_investment_amount: str = "") -> str:
        return _build_rebalance_review_prompt(new_investment_amount)

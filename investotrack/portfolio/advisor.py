"""Rebalancing suggestions: Anthropic narrative with a rule-based fallback."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from investotrack.lib.formatters import format_currency, format_percentage, format_quantity, format_response
from investotrack.portfolio.models import Holding
from investotrack.providers.anthropic_client import AnthropicClient
from investotrack.providers.http import ProviderError
from investotrack.services.base import ServiceResult, envelope_from_provider_error

LOGGER = logging.getLogger(__name__)
DRIFT_THRESHOLD_PERCENT = 2.0
SYSTEM_PROMPT = (
    "You are a prudent portfolio assistant for a long-term ETF investor. "
    "You never place orders; you explain allocation drift and how to spread new money."
)


def holdings_projection(holdings: list[Holding]) -> list[dict[str, Any]]:
    """Read-only view of the fields the advisor is allowed to see."""
    return [
        {
            "name": holding.name,
            "isin": holding.isin,
            "quantity": holding.quantity,
            "current_price": holding.current_price,
            "current_amount": holding.current_amount,
            "objective": holding.objective,
            "type": holding.asset_type,
            "potential_income": holding.potential_income,
            "allocation_percentage": holding.allocation_percentage or 0.0,
            "target_allocation_percentage": holding.target_allocation_percentage or 0.0,
            "target_buy_amount": holding.target_buy_amount,
        }
        for holding in holdings
    ]


def build_rebalancing_prompt(holdings: list[Holding], new_investment_amount: float | None) -> str:
    payload = {
        "holdings": holdings_projection(holdings),
        "new_investment_amount": new_investment_amount,
    }
    investment_note = (
        f"The investor plans to add {format_currency(new_investment_amount)}. Explain how to split it."
        if new_investment_amount
        else "No new money is planned; focus on drift between current and target allocation."
    )
    return (
        "Review this fund portfolio and suggest how to move it back toward its target allocation.\n"
        f"{investment_note}\n"
        "Answer with:\n"
        "1) Holdings that are overweight or underweight versus target\n"
        "2) Concrete buy suggestions (prefer buying over selling)\n"
        "3) Risks or caveats in one or two sentences.\n"
        f"Portfolio JSON: {json.dumps(payload, default=str)}"
    )


def generate_fallback_suggestions(holdings: list[Holding], new_investment_amount: float | None) -> str:
    lines: list[str] = []
    for holding in holdings:
        actual = holding.allocation_percentage
        target = holding.target_allocation_percentage
        if actual is None or target is None:
            continue
        drift = actual - target
        if drift > DRIFT_THRESHOLD_PERCENT:
            lines.append(
                f"Overweight: {holding.name} is {format_percentage(actual)} vs target {format_percentage(target)}."
            )
        elif drift < -DRIFT_THRESHOLD_PERCENT:
            lines.append(
                f"Underweight: {holding.name} is {format_percentage(actual)} vs target {format_percentage(target)}."
            )
    if not lines:
        lines.append("All priced holdings are within 2 points of their target allocation.")

    if new_investment_amount:
        buys = [holding for holding in holdings if holding.quantity_to_buy_from_new_investment]
        for holding in buys:
            cost = (holding.current_price or 0.0) * (holding.quantity_to_buy_from_new_investment or 0)
            lines.append(
                f"Buy {format_quantity(holding.quantity_to_buy_from_new_investment)} units of {holding.name} "
                f"(~{format_currency(cost)})."
            )
        if not buys:
            lines.append(f"No whole units can be bought yet from {format_currency(new_investment_amount)}.")

    unpriced = [holding.name for holding in holdings if holding.current_price is None]
    if unpriced:
        lines.append(f"No live price for: {', '.join(unpriced)}.")
    return format_response("Rebalancing suggestions", lines, source="rules")


class RebalanceAdvisor:
    def __init__(self, client: AnthropicClient | None = None, enabled: bool = True) -> None:
        self._client = client
        self.enabled = enabled

    async def suggest(self, holdings: list[Holding], new_investment_amount: float | None) -> ServiceResult[str]:
        fallback = generate_fallback_suggestions(holdings, new_investment_amount)
        if not (self.enabled and self._client):
            return ServiceResult(data=fallback, source="rules", fetched_at=time.time())

        prompt = build_rebalancing_prompt(holdings, new_investment_amount)
        try:
            text = await asyncio.to_thread(self._client.generate_text, prompt, SYSTEM_PROMPT)
        except ProviderError as error:
            LOGGER.warning("advisor request failed: provider=%s code=%s status=%s", error.provider, error.code, error.status)
            return ServiceResult(
                data=fallback,
                source="rules",
                warning="AI suggestions are unavailable right now; showing a rule-based summary.",
                error=envelope_from_provider_error(error),
                fetched_at=time.time(),
            )
        if not text:
            return ServiceResult(
                data=fallback,
                source="rules",
                warning="AI returned no suggestions; showing a rule-based summary.",
                fetched_at=time.time(),
            )
        return ServiceResult(
            data=format_response("Rebalancing suggestions", [text], source="anthropic"),
            source="anthropic",
            fetched_at=time.time(),
        )

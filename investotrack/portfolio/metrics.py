"""Allocation and new-investment metrics for a list of holdings."""

from __future__ import annotations

import math
from dataclasses import asdict, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import pandas as pd

from investotrack.portfolio.models import Holding, RoundingPolicy


def round_quantity(value: float, policy: RoundingPolicy | str) -> int:
    """Convert a fractional unit count to whole units.

    ``nearest`` rounds half away from zero, unlike Python's ``round``.
    """
    if math.isnan(value):
        return 0
    policy = RoundingPolicy.parse(policy)
    if policy is RoundingPolicy.UP:
        return math.ceil(value)
    if policy is RoundingPolicy.DOWN:
        return math.floor(value)
    return int(Decimal(value).quantize(Decimal(0), rounding=ROUND_HALF_UP))


def total_current_value(holdings: list[Holding]) -> float:
    return sum(holding.current_amount for holding in holdings if holding.current_amount is not None)


def compute_target_allocations(holdings: list[Holding]) -> list[Holding]:
    total_target = sum(holding.target_buy_amount for holding in holdings)
    if total_target <= 0:
        return [replace(holding, target_allocation_percentage=0.0) for holding in holdings]
    return [
        replace(holding, target_allocation_percentage=(holding.target_buy_amount / total_target) * 100.0)
        for holding in holdings
    ]


def compute_metrics(
    holdings: list[Holding],
    new_investment_total: float | None = None,
    rounding_policy: RoundingPolicy | str | None = None,
) -> list[Holding]:
    """Return new holdings with current allocation and new-investment split applied.

    Target allocation percentages are read, never recomputed here. A holding
    without a ``current_amount`` keeps ``allocation_percentage=None``.
    """
    total_value = total_current_value(holdings)
    policy = RoundingPolicy.parse(rounding_policy) if rounding_policy is not None else None
    invest = new_investment_total is not None and new_investment_total > 0

    out: list[Holding] = []
    for holding in holdings:
        if holding.current_amount is None:
            allocation = None
        elif total_value > 0:
            allocation = (holding.current_amount / total_value) * 100.0
        else:
            allocation = 0.0

        new_allocation: float | None = None
        quantity_to_buy: int | None = None
        target_pct = holding.target_allocation_percentage
        if invest and target_pct is not None and target_pct > 0:
            new_allocation = new_investment_total * (target_pct / 100.0)
            price = holding.current_price
            if price is not None and price > 0 and new_allocation > 0 and policy is not None:
                quantity_to_buy = round_quantity(new_allocation / price, policy)

        out.append(
            replace(
                holding,
                allocation_percentage=allocation,
                new_investment_allocation=new_allocation,
                quantity_to_buy_from_new_investment=quantity_to_buy,
            )
        )
    return out


def holdings_frame(holdings: list[Holding]) -> pd.DataFrame:
    frame = pd.DataFrame([asdict(holding) for holding in holdings])
    if frame.empty:
        return pd.DataFrame(
            columns=[
                "id",
                "name",
                "current_price",
                "current_amount",
                "target_buy_amount",
                "allocation_percentage",
                "target_allocation_percentage",
                "quantity_to_buy_from_new_investment",
            ]
        )
    return frame


def compare_target_vs_actual(holdings: list[Holding]) -> list[dict[str, Any]]:
    frame = holdings_frame(holdings)
    rows: list[dict[str, Any]] = []
    for row in frame.itertuples(index=False):
        actual = None if pd.isna(row.allocation_percentage) else float(row.allocation_percentage)
        target = None if pd.isna(row.target_allocation_percentage) else float(row.target_allocation_percentage)
        rows.append(
            {
                "id": row.id,
                "name": row.name,
                "actual_percent": actual,
                "target_percent": target,
                "drift_percent": actual - target if actual is not None and target is not None else None,
            }
        )
    return rows


def summarize_portfolio(holdings: list[Holding], new_investment_total: float | None = None) -> dict[str, Any]:
    """Portfolio totals as shown on the overview: current value, target value and planned buys."""
    frame = holdings_frame(holdings)
    amounts = pd.to_numeric(frame["current_amount"], errors="coerce")
    prices = pd.to_numeric(frame["current_price"], errors="coerce")
    buys = pd.to_numeric(frame["quantity_to_buy_from_new_investment"], errors="coerce")
    new_shares_value = float((prices.fillna(0.0) * buys.fillna(0.0)).sum())
    target_total = float(pd.to_numeric(frame["target_buy_amount"], errors="coerce").fillna(0.0).sum())
    investing = new_investment_total is not None and new_investment_total > 0
    return {
        "holding_count": int(len(frame)),
        "priced_count": int(amounts.notna().sum()),
        "unpriced_count": int(amounts.isna().sum()),
        "total_current_value": float(amounts.fillna(0.0).sum()),
        "total_target_buy_amount": target_total,
        "value_of_new_shares_to_buy": new_shares_value,
        "new_investment_amount": new_investment_total if investing else None,
        "target_value_label": "Value of New Shares to Buy" if investing else "Original Target Value (from CSV)",
        "target_value": new_shares_value if investing else target_total,
        "target_vs_actual": compare_target_vs_actual(holdings),
    }

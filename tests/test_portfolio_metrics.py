import math
from dataclasses import FrozenInstanceError, replace

import pytest

from investotrack.portfolio.metrics import (
    compare_target_vs_actual,
    compute_metrics,
    compute_target_allocations,
    round_quantity,
    summarize_portfolio,
)
from investotrack.portfolio.models import Holding, RoundingPolicy


def _holding(holding_id: str, quantity: float, price: float | None, target: float) -> Holding:
    return Holding(
        id=holding_id,
        isin=holding_id,
        name=f"Fund {holding_id}",
        quantity=quantity,
        target_buy_amount=target,
        current_price=price,
        current_amount=quantity * price if price is not None else None,
    )


def _fifty_fifty() -> list[Holding]:
    return compute_target_allocations([_holding("A", 10, 10.0, 100.0), _holding("B", 5, 20.0, 100.0)])


@pytest.mark.parametrize(
    ("value", "policy", "expected"),
    [
        (2.4, RoundingPolicy.UP, 3),
        (2.4, RoundingPolicy.DOWN, 2),
        (2.5, RoundingPolicy.UP, 3),
        (2.01, "up", 3),
        (2.99, RoundingPolicy.DOWN, 2),
        (2.5, RoundingPolicy.NEAREST, 3),
        (2.49, "nearest", 2),
        (3.5, "classic", 4),
        (-2.5, RoundingPolicy.NEAREST, -3),
        (0.49999999999999994, RoundingPolicy.NEAREST, 0),
        (-0.49999999999999994, RoundingPolicy.NEAREST, 0),
        (4.0, RoundingPolicy.DOWN, 4),
        (float("nan"), RoundingPolicy.UP, 0),
    ],
)
def test_round_quantity(value: float, policy: RoundingPolicy | str, expected: int) -> None:
    assert round_quantity(value, policy) == expected


def test_rounding_policy_parse_rejects_unknown_label() -> None:
    with pytest.raises(ValueError, match="Rounding policy must be one of"):
        RoundingPolicy.parse("sideways")
    assert RoundingPolicy.parse(" Down ") is RoundingPolicy.DOWN


def test_fifty_fifty_split_with_down_rounding() -> None:
    result = compute_metrics(_fifty_fifty(), 100.0, RoundingPolicy.DOWN)

    assert [holding.allocation_percentage for holding in result] == [50.0, 50.0]
    assert [holding.target_allocation_percentage for holding in result] == [50.0, 50.0]
    assert [holding.new_investment_allocation for holding in result] == [50.0, 50.0]
    assert [holding.quantity_to_buy_from_new_investment for holding in result] == [5, 2]


def test_unpriced_holding_is_excluded_from_value_and_reports_no_allocation() -> None:
    holdings = compute_target_allocations(
        [_holding("A", 10, 10.0, 100.0), _holding("B", 5, 20.0, 100.0), _holding("C", 3, None, 100.0)]
    )
    result = compute_metrics(holdings, 300.0, RoundingPolicy.NEAREST)

    assert result[2].allocation_percentage is None
    assert result[2].quantity_to_buy_from_new_investment is None
    assert result[2].new_investment_allocation == pytest.approx(100.0)
    assert result[0].allocation_percentage == pytest.approx(50.0)
    priced_total = sum(holding.allocation_percentage or 0.0 for holding in result)
    assert priced_total == pytest.approx(100.0)


def test_no_new_investment_leaves_split_fields_unset() -> None:
    for amount in (None, 0.0):
        result = compute_metrics(_fifty_fifty(), amount, RoundingPolicy.DOWN)
        assert all(holding.new_investment_allocation is None for holding in result)
        assert all(holding.quantity_to_buy_from_new_investment is None for holding in result)


def test_missing_policy_gives_allocation_but_no_quantity() -> None:
    result = compute_metrics(_fifty_fifty(), 100.0)
    assert [holding.new_investment_allocation for holding in result] == [50.0, 50.0]
    assert all(holding.quantity_to_buy_from_new_investment is None for holding in result)


def test_zero_total_value_gives_zero_allocation() -> None:
    holdings = [_holding("A", 0, 10.0, 50.0), _holding("B", 0, 20.0, 50.0)]
    result = compute_metrics(compute_target_allocations(holdings))
    assert [holding.allocation_percentage for holding in result] == [0.0, 0.0]


def test_target_allocations_with_no_targets_are_zero() -> None:
    result = compute_target_allocations([_holding("A", 1, 10.0, 0.0), _holding("B", 1, 10.0, 0.0)])
    assert [holding.target_allocation_percentage for holding in result] == [0.0, 0.0]


def test_compute_metrics_is_pure_and_idempotent() -> None:
    holdings = _fifty_fifty()
    original = list(holdings)

    once = compute_metrics(holdings, 100.0, RoundingPolicy.UP)
    twice = compute_metrics(once, 100.0, RoundingPolicy.UP)

    assert holdings == original
    assert once == twice
    assert all(holding.allocation_percentage is None for holding in holdings)


def test_clearing_investment_resets_previous_split() -> None:
    with_split = compute_metrics(_fifty_fifty(), 100.0, RoundingPolicy.DOWN)
    cleared = compute_metrics(with_split, None, RoundingPolicy.DOWN)
    assert all(holding.quantity_to_buy_from_new_investment is None for holding in cleared)


def test_summarize_portfolio_with_and_without_new_investment() -> None:
    holdings = compute_target_allocations(
        [_holding("A", 10, 10.0, 100.0), _holding("B", 5, 20.0, 100.0), _holding("C", 3, None, 50.0)]
    )

    planned = summarize_portfolio(compute_metrics(holdings, 100.0, RoundingPolicy.DOWN), 100.0)
    assert planned["holding_count"] == 3
    assert planned["priced_count"] == 2
    assert planned["unpriced_count"] == 1
    assert planned["total_current_value"] == pytest.approx(200.0)
    assert planned["target_value_label"] == "Value of New Shares to Buy"
    # A: 40 / 10 -> 4 units, B: 40 / 20 -> 2 units
    assert planned["value_of_new_shares_to_buy"] == pytest.approx(80.0)
    assert planned["target_value"] == pytest.approx(80.0)

    idle = summarize_portfolio(compute_metrics(holdings), None)
    assert idle["new_investment_amount"] is None
    assert idle["target_value_label"] == "Original Target Value (from CSV)"
    assert idle["target_value"] == pytest.approx(250.0)


def test_compare_target_vs_actual_reports_drift() -> None:
    holdings = compute_target_allocations([_holding("A", 30, 10.0, 100.0), _holding("B", 5, 20.0, 100.0)])
    rows = compare_target_vs_actual(compute_metrics(holdings))

    assert rows[0]["actual_percent"] == pytest.approx(75.0)
    assert rows[0]["drift_percent"] == pytest.approx(25.0)
    assert rows[1]["drift_percent"] == pytest.approx(-25.0)


def test_summary_of_empty_portfolio() -> None:
    summary = summarize_portfolio([], None)
    assert summary["holding_count"] == 0
    assert summary["total_current_value"] == 0.0
    assert summary["target_vs_actual"] == []
    assert not math.isnan(summary["target_value"])


def test_replace_keeps_holdings_frozen() -> None:
    holding = _holding("A", 1, 10.0, 10.0)
    with pytest.raises(FrozenInstanceError):
        holding.quantity = 2  # type: ignore[misc]
    assert replace(holding, quantity=2).quantity == 2

"""Typed portfolio models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RoundingPolicy(str, Enum):
    UP = "up"
    DOWN = "down"
    NEAREST = "nearest"

    @classmethod
    def parse(cls, value: str | RoundingPolicy) -> RoundingPolicy:
        if isinstance(value, RoundingPolicy):
            return value
        label = str(value).strip().lower()
        if label == "classic":
            return cls.NEAREST
        try:
            return cls(label)
        except ValueError:
            raise ValueError("Rounding policy must be one of: up, down, nearest (or classic).") from None


@dataclass(frozen=True)
class Holding:
    id: str
    isin: str
    name: str
    quantity: float
    objective: str = ""
    asset_type: str = "ETF"
    potential_income: str = ""
    target_buy_amount: float = 0.0
    distributes: str | None = None
    ticker: str | None = None
    buy_price: float | None = None
    qty_to_buy: float | None = None
    actual_gross_amount: float | None = None
    current_price: float | None = None
    current_amount: float | None = None
    price_source_exchange: str | None = None
    allocation_percentage: float | None = None
    target_allocation_percentage: float | None = None
    new_investment_allocation: float | None = None
    quantity_to_buy_from_new_investment: int | None = None
    regular_market_change: float | None = None
    regular_market_change_percent: float | None = None
    volume: float | None = None
    average_volume: float | None = None
    market_cap: float | None = None
    pe_ratio: float | None = None
    eps: float | None = None
    fifty_two_week_low: float | None = None
    fifty_two_week_high: float | None = None
    ter: float | None = None
    fund_size: float | None = None
    category_name: str | None = None


@dataclass
class ParsedPortfolio:
    holdings: list[Holding] = field(default_factory=list)
    initial_new_investment_amount: float | None = None
    initial_rounding_policy: RoundingPolicy | None = None
    csv_errors: list[str] = field(default_factory=list)


@dataclass
class RefreshReport:
    updated: int = 0
    requested: int = 0
    not_found: list[str] = field(default_factory=list)
    currency_mismatch: list[str] = field(default_factory=list)
    skipped: bool = False
    refreshed_at: float | None = None

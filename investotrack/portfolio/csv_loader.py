"""Portfolio CSV ingestion.

The sheet layout is positional (name, quantity, price, amount, objective,
type, potential income, allocation, target buy amount, buy price, qty to buy,
actual gross amount, ISIN, distributes) with an optional ``Ticker`` column
located by header. Two trailer rows carry settings: ``Total`` holds the new
investment amount next to its label, ``Qty rounding`` holds the policy.
"""

from __future__ import annotations

import csv
import io
import os
import re

from investotrack.portfolio.metrics import compute_target_allocations
from investotrack.portfolio.models import Holding, ParsedPortfolio, RoundingPolicy

MIN_COLUMNS = 13
NEW_INVESTMENT_LABEL = "enter new investment amount"
TOTAL_LABEL = "total"
ROUNDING_LABEL = "qty rounding"

COL_NAME = 0
COL_QUANTITY = 1
COL_OBJECTIVE = 4
COL_TYPE = 5
COL_POTENTIAL_INCOME = 6
COL_TARGET_BUY_AMOUNT = 8
COL_BUY_PRICE = 9
COL_QTY_TO_BUY = 10
COL_ACTUAL_GROSS_AMOUNT = 11
COL_ISIN = 12
COL_DISTRIBUTES = 13

_STRIP_PATTERN = re.compile(r"[€%\s]")


def parse_numeric_value(value: str | None) -> float | None:
    """Parse sheet numbers such as ``€1.230,00``, ``10,00 %`` or ``1,234.5``."""
    if value is None:
        return None
    cleaned = _STRIP_PATTERN.sub("", value)
    if not cleaned:
        return None
    if "." in cleaned and "," in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        cleaned = cleaned.replace(",", ".", 1)
    try:
        return float(cleaned)
    except ValueError:
        return None


def _cell(row: list[str], index: int) -> str:
    return row[index].strip() if index < len(row) else ""


def _trim_trailing_empty(row: list[str]) -> list[str]:
    cells = [cell.strip() for cell in row]
    while cells and not cells[-1]:
        cells.pop()
    return cells


def _value_after_label(row: list[str], label: str) -> str | None:
    for idx, cell in enumerate(row):
        if cell.strip().lower() == label:
            for following in row[idx + 1 :]:
                if following.strip():
                    return following.strip()
            return None
    return None


def _optional_number(row: list[str], index: int) -> float | None:
    return parse_numeric_value(_cell(row, index))


def parse_portfolio_csv(content: str) -> ParsedPortfolio:
    result = ParsedPortfolio()
    text = content.strip()
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        result.csv_errors.append("CSV data is too short or empty.")
        return result

    reader = csv.reader(io.StringIO(text))
    header = [cell.strip().lower() for cell in next(reader)]
    ticker_index = header.index("ticker") if "ticker" in header else -1

    holdings: list[Holding] = []
    seen_isins: set[str] = set()
    for row in reader:
        line_number = reader.line_num
        cells = _trim_trailing_empty(row)
        if not cells:
            continue
        label = cells[0].lower()

        if label == TOTAL_LABEL:
            raw_amount = _value_after_label(cells, NEW_INVESTMENT_LABEL)
            if raw_amount is not None:
                amount = parse_numeric_value(raw_amount)
                if amount is None or amount < 0:
                    result.csv_errors.append(f"Line {line_number}: invalid new investment amount '{raw_amount}'.")
                else:
                    result.initial_new_investment_amount = amount
            continue

        if label == ROUNDING_LABEL:
            raw_policy = _value_after_label(cells, ROUNDING_LABEL)
            if raw_policy is not None:
                try:
                    result.initial_rounding_policy = RoundingPolicy.parse(raw_policy)
                except ValueError as error:
                    result.csv_errors.append(f"Line {line_number}: {error}")
            continue

        if len(cells) < MIN_COLUMNS:
            result.csv_errors.append(
                f"Skipping line {line_number} due to insufficient columns "
                f"(found {len(cells)}, expected at least {MIN_COLUMNS} for ISIN): {','.join(row)}"
            )
            continue

        quantity = parse_numeric_value(_cell(cells, COL_QUANTITY)) if _cell(cells, COL_QUANTITY) else 0.0
        if quantity is None or quantity < 0:
            result.csv_errors.append(
                f"Skipping line {line_number}: quantity '{_cell(cells, COL_QUANTITY)}' is not a non-negative number."
            )
            continue
        raw_target = _cell(cells, COL_TARGET_BUY_AMOUNT)
        target = parse_numeric_value(raw_target) if raw_target else 0.0
        if target is None or target < 0:
            result.csv_errors.append(
                f"Skipping line {line_number}: target buy amount '{raw_target}' is not a non-negative number."
            )
            continue

        isin = _cell(cells, COL_ISIN).upper()
        if not isin:
            result.csv_errors.append(f"Skipping line {line_number}: ISIN is empty.")
            continue
        if isin in seen_isins:
            result.csv_errors.append(f"Skipping line {line_number}: duplicate ISIN {isin}.")
            continue
        seen_isins.add(isin)
        ticker = _cell(cells, ticker_index) if ticker_index >= 0 else ""
        holdings.append(
            Holding(
                id=isin,
                isin=isin,
                name=_cell(cells, COL_NAME) or "N/A",
                quantity=quantity,
                objective=_cell(cells, COL_OBJECTIVE),
                asset_type=_cell(cells, COL_TYPE) or "ETF",
                potential_income=_cell(cells, COL_POTENTIAL_INCOME),
                target_buy_amount=target,
                distributes=_cell(cells, COL_DISTRIBUTES) or None,
                ticker=ticker.upper() or None,
                buy_price=_optional_number(cells, COL_BUY_PRICE),
                qty_to_buy=_optional_number(cells, COL_QTY_TO_BUY),
                actual_gross_amount=_optional_number(cells, COL_ACTUAL_GROSS_AMOUNT),
            )
        )

    result.holdings = compute_target_allocations(holdings)
    return result


def load_portfolio_csv(file_path: str) -> ParsedPortfolio:
    absolute_path = file_path if os.path.isabs(file_path) else os.path.abspath(file_path)
    ext = os.path.splitext(absolute_path)[1].lower()
    if ext != ".csv":
        raise ValueError("Portfolio input must be a CSV file (.csv).")
    with open(absolute_path, "r", encoding="utf-8-sig") as handle:
        return parse_portfolio_csv(handle.read())

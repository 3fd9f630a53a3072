import math

from investotrack.lib.formatters import (
    FINANCIAL_DISCLAIMER,
    format_currency,
    format_percentage,
    format_quantity,
    format_response,
)


def test_format_response_includes_disclaimer() -> None:
    output = format_response("Title", ["a", "b"], source="X", warning="Y")
    assert "Title" in output
    assert "Source: X" in output
    assert "Warning: Y" in output
    assert FINANCIAL_DISCLAIMER in output
    assert FINANCIAL_DISCLAIMER not in format_response("Title", ["a"], include_disclaimer=False)


def test_format_currency_german_style() -> None:
    assert format_currency(1230) == "1.230,00 €"
    assert format_currency(207740.5) == "207.740,50 €"
    assert format_currency(12.5, "usd") == "12,50 $"
    assert format_currency(12.5, "SEK") == "12,50 SEK"
    assert format_currency(12.5, "") == "12,50"
    assert format_currency(12.5, "euro") == "12,50 (Invalid Code: euro)"


def test_missing_values_render_as_na() -> None:
    assert format_currency(None) == "N/A"
    assert format_currency(math.nan) == "N/A"
    assert format_percentage(None) == "N/A"
    assert format_quantity(float("nan")) == "N/A"


def test_percentage_and_quantity() -> None:
    assert format_percentage(12.3456) == "12.35%"
    assert format_percentage(34) == "34.00%"
    assert format_quantity(5.0) == "5"
    assert format_quantity(2.5) == "2.5"
    assert format_quantity(1234567) == "1234567"
    assert format_quantity(0.125) == "0.125"

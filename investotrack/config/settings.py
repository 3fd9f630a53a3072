"""Environment-driven settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for stdio and HTTP-hosted modes."""

    app_name: str = "investotrack"
    app_version: str = "1.0.0"
    transport_mode: str = "auto"
    http_transport: str = "sse"
    host: str = "0.0.0.0"
    port: int = 8000
    mcp_path: str = "/mcp"
    health_path: str = "/health"
    required_currency: str = "EUR"
    home_exchanges: tuple[str, ...] = ("PAR", "AMS", "BRU", "LIS")
    ticker_overrides: dict[str, str] = field(default_factory=dict)
    quote_timeout_seconds: float = 10.0
    request_timeout_seconds: float = 15.0
    portfolio_csv_path: str | None = None
    default_rounding_policy: str = "nearest"
    claude_api_key: str | None = None
    claude_model: str = "claude-sonnet-4-5-20250929"
    portfolio_enable_ai_suggestions: bool = True
    log_level: str = "INFO"


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None or not value.strip():
        return default
    return tuple(item.strip().upper() for item in value.split(",") if item.strip())


def parse_ticker_overrides(raw: str | None) -> dict[str, str]:
    """Parse an ISIN -> ticker map from JSON or ``ISIN=TICKER`` pairs separated by commas."""
    if raw is None or not raw.strip():
        return {}
    text = raw.strip()
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            LOGGER.warning("ticker overrides ignored: not valid JSON")
            return {}
        if not isinstance(data, dict):
            return {}
        pairs = data.items()
    else:
        pairs = (item.split("=", 1) for item in text.split(",") if "=" in item)
    return {str(isin).strip().upper(): str(ticker).strip().upper() for isin, ticker in pairs if str(ticker).strip()}


def load_ticker_overrides(inline: str | None, file_path: str | None) -> dict[str, str]:
    overrides: dict[str, str] = {}
    if file_path:
        try:
            with open(file_path, "r", encoding="utf-8") as handle:
                overrides.update(parse_ticker_overrides(handle.read()))
        except OSError as error:
            LOGGER.warning("ticker overrides file unreadable: path=%s error=%s", file_path, error)
    overrides.update(parse_ticker_overrides(inline))
    return overrides


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        app_name=os.getenv("APP_NAME", "investotrack"),
        transport_mode=os.getenv("TRANSPORT_MODE", "auto").strip().lower(),
        http_transport=os.getenv("HTTP_TRANSPORT", "sse").strip().lower(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int(os.getenv("PORT"), 8000),
        mcp_path=os.getenv("MCP_PATH", "/mcp"),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        required_currency=(os.getenv("REQUIRED_CURRENCY") or "EUR").strip().upper(),
        home_exchanges=_as_list(os.getenv("HOME_EXCHANGES"), ("PAR", "AMS", "BRU", "LIS")),
        ticker_overrides=load_ticker_overrides(os.getenv("TICKER_OVERRIDES"), os.getenv("TICKER_OVERRIDES_FILE")),
        quote_timeout_seconds=_as_float(os.getenv("QUOTE_TIMEOUT_SECONDS"), 10.0),
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 15.0),
        portfolio_csv_path=os.getenv("PORTFOLIO_CSV_PATH") or None,
        default_rounding_policy=(os.getenv("DEFAULT_ROUNDING_POLICY") or "nearest").strip().lower(),
        claude_api_key=os.getenv("CLAUDE_API_KEY") or os.getenv("ANTHROPIC_API_KEY"),
        claude_model=(
            os.getenv("CLAUDE_MODEL")
            or os.getenv("ANTHROPIC_MODEL")
            or "claude-sonnet-4-5-20250929"
        ),
        portfolio_enable_ai_suggestions=_as_bool(os.getenv("PORTFOLIO_ENABLE_AI_SUGGESTIONS"), True),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    )

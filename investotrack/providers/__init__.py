"""Provider clients and normalized provider models."""

from investotrack.providers.anthropic_client import AnthropicClient
from investotrack.providers.yahoo_finance import YahooFinanceClient

__all__ = ["AnthropicClient", "YahooFinanceClient"]

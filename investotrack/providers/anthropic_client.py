"""Anthropic messages client for rebalancing suggestions."""

from __future__ import annotations

from typing import Any

import requests

from investotrack.providers.http import ProviderError, map_status_to_code

MESSAGES_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"


def extract_text(data: Any) -> str | None:
    """Join the text blocks of a messages response; ``None`` when there are none."""
    blocks = data.get("content") if isinstance(data, dict) else None
    if not isinstance(blocks, list):
        return None
    texts = [block["text"] for block in blocks if isinstance(block, dict) and isinstance(block.get("text"), str)]
    joined = "\n".join(texts).strip()
    return joined or None


class AnthropicClient:
    def __init__(self, api_key: str, model: str, timeout_seconds: float = 30.0, max_tokens: int = 900) -> None:
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self._headers = {"x-api-key": api_key, "anthropic-version": API_VERSION}

    def generate_text(self, prompt: str, system: str | None = None) -> str | None:
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": 0.3,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            body["system"] = system
        try:
            response = requests.post(MESSAGES_URL, json=body, headers=self._headers, timeout=self.timeout_seconds)
        except requests.Timeout as error:
            raise ProviderError("anthropic", "TIMEOUT", "Anthropic request timed out.") from error
        except requests.RequestException as error:
            raise ProviderError("anthropic", "NETWORK", f"Anthropic request failed: {error}") from error

        if not response.ok:
            status = response.status_code
            raise ProviderError("anthropic", map_status_to_code(status), f"Anthropic returned status {status}.", status)
        try:
            return extract_text(response.json())
        except ValueError as error:
            raise ProviderError(
                "anthropic", "BAD_RESPONSE", "Anthropic returned non-JSON response.", response.status_code
            ) from error

"""Shared HTTP session and provider error mapping."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Literal

import requests
from requests.adapters import HTTPAdapter

from investotrack.providers.models import ProviderName

ProviderErrorCode = Literal["RATE_LIMIT", "AUTH", "NOT_FOUND", "UPSTREAM", "NETWORK", "BAD_RESPONSE", "TIMEOUT"]
RETRYABLE_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})
STATUS_CODES: dict[int, ProviderErrorCode] = {401: "AUTH", 403: "AUTH", 404: "NOT_FOUND", 429: "RATE_LIMIT"}
BACKOFF_SECONDS = 0.25
USER_AGENT = "Mozilla/5.0 (compatible; investotrack/1.0)"

LOGGER = logging.getLogger(__name__)


def _build_session() -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    adapter = HTTPAdapter(pool_connections=10, pool_maxsize=32)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


_SESSION = _build_session()


@dataclass
class ProviderError(Exception):
    provider: ProviderName
    code: ProviderErrorCode
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


def map_status_to_code(status: int) -> ProviderErrorCode:
    return STATUS_CODES.get(status, "UPSTREAM")


def _is_retryable(error: ProviderError) -> bool:
    # No status means the request never completed (timeout or connection failure).
    return error.status is None or error.status in RETRYABLE_STATUSES


def _get_json(url: str, provider: ProviderName, timeout_seconds: float, headers: dict[str, str] | None) -> Any:
    try:
        response = _SESSION.get(url, timeout=timeout_seconds, headers=headers)
    except requests.Timeout as error:
        raise ProviderError(provider, "TIMEOUT", "Provider request timed out.") from error
    except requests.RequestException as error:
        raise ProviderError(provider, "NETWORK", "Provider request failed due to network error.") from error

    status = response.status_code
    if not response.ok:
        raise ProviderError(provider, map_status_to_code(status), f"Provider request failed with status {status}.", status)
    if not response.text:
        return {}
    try:
        return response.json()
    except ValueError as error:
        raise ProviderError(provider, "BAD_RESPONSE", "Provider returned non-JSON content.", status) from error


def fetch_json(
    url: str,
    provider: ProviderName,
    timeout_seconds: float = 15.0,
    headers: dict[str, str] | None = None,
    max_retries: int = 3,
) -> Any:
    """GET ``url`` as JSON, retrying transient failures with exponential backoff.

    Every failure surfaces as ``ProviderError``; the last one is raised once
    ``max_retries`` attempts are spent.
    """
    attempts = max(1, max_retries)
    attempt = 1
    while True:
        try:
            return _get_json(url, provider, timeout_seconds, headers)
        except ProviderError as error:
            if attempt >= attempts or not _is_retryable(error):
                raise
            LOGGER.debug(
                "provider request retry: provider=%s code=%s status=%s attempt=%s",
                provider,
                error.code,
                error.status,
                attempt,
            )
            time.sleep(BACKOFF_SECONDS * 2 ** (attempt - 1))
            attempt += 1

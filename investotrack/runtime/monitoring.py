"""Per-tool call counters and structured tool event logging."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

LOGGER = logging.getLogger(__name__)
SLOW_TOOL_MS = 2000.0


@dataclass
class ToolStats:
    calls: int = 0
    failures: int = 0
    total_latency_ms: float = 0.0


class ServerMetrics:
    """Thread-safe counters reported by the health route."""

    def __init__(self, started_at: float | None = None) -> None:
        self.started_at = started_at or time.time()
        self._lock = threading.Lock()
        self._tools: dict[str, ToolStats] = {}

    def record(self, tool: str, latency_ms: float, success: bool) -> None:
        with self._lock:
            stats = self._tools.setdefault(tool, ToolStats())
            stats.calls += 1
            stats.failures += 0 if success else 1
            stats.total_latency_ms += max(0.0, latency_ms)

    @property
    def total_requests(self) -> int:
        with self._lock:
            return sum(stats.calls for stats in self._tools.values())

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            tools = {
                name: {
                    "calls": stats.calls,
                    "failures": stats.failures,
                    "avg_latency_ms": round(stats.total_latency_ms / stats.calls, 3) if stats.calls else 0.0,
                }
                for name, stats in sorted(self._tools.items())
            }
        calls = sum(item["calls"] for item in tools.values())
        failures = sum(item["failures"] for item in tools.values())
        return {
            "uptime_seconds": round(max(0.0, time.time() - self.started_at), 3),
            "total_requests": calls,
            "error_rate": failures / calls if calls else 0.0,
            "tools": tools,
        }


def log_tool_event(tool: str, subject: str | None, latency_ms: float, success: bool) -> None:
    """One JSON line per tool call; stdout belongs to the stdio transport, so it goes through logging."""
    event: dict[str, Any] = {
        "event": "tool_call",
        "tool": tool,
        "subject": subject,
        "success": success,
        "latency_ms": round(latency_ms, 3),
        "ts": int(time.time()),
    }
    if latency_ms > SLOW_TOOL_MS:
        event["slow"] = True
    LOGGER.log(logging.INFO if success else logging.WARNING, json.dumps(event, ensure_ascii=True))

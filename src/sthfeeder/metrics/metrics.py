"""
Async-first feed metrics.

Implements minimal Prometheus-compatible counters and gauges for feed
rounds.

Design goals:
- Zero global state; instances are process-scoped and passed explicitly
- Safe no-op exporting when metrics are disabled by settings
- In-memory counters are always kept for tests and shutdown summaries
"""

from __future__ import annotations

import asyncio
from collections import Counter as _Tally
from dataclasses import dataclass, field

from prometheus_client import CollectorRegistry, Counter, Gauge

ROUND_OUTCOMES: tuple[str, ...] = (
    "noop",
    "accepted",
    "too_old",
    "fetch_error",
    "proof_error",
    "submit_error",
    "parse_error",
    "timeout",
    "error",
)


@dataclass
class FeedMetrics:
    """Captured runtime metrics for quick assertions in tests."""

    rounds: dict[str, int] = field(default_factory=dict)
    rounds_by_log: dict[str, dict[str, int]] = field(default_factory=dict)
    witnessed_sizes: dict[str, int] = field(default_factory=dict)

    @property
    def total_rounds(self) -> int:
        return sum(self.rounds.values())


class MetricsCollector:
    """Feed metrics collector.

    If metrics are disabled, Prometheus objects are never created while
    basic in-memory counters are still tracked.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = asyncio.Lock()
        self._rounds: _Tally[str] = _Tally()
        self._rounds_by_log: dict[str, _Tally[str]] = {}
        self._sizes: dict[str, int] = {}

        self._c_rounds: Counter | None = None
        self._g_size: Gauge | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            # Isolated registry avoids duplicate registration across instances
            self._registry = CollectorRegistry()
            self._c_rounds = Counter(
                "sthfeeder_rounds_total",
                "Total number of feed rounds by outcome",
                ["log", "outcome"],
                registry=self._registry,
            )
            self._g_size = Gauge(
                "sthfeeder_witnessed_tree_size",
                "Tree size of the latest STH known to be held by the witness",
                ["log"],
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    async def record_round(self, log_name: str, outcome: str) -> None:
        if outcome not in ROUND_OUTCOMES:
            outcome = "error"
        async with self._lock:
            self._rounds[outcome] += 1
            self._rounds_by_log.setdefault(log_name, _Tally())[outcome] += 1
        if self._c_rounds is not None:
            self._c_rounds.labels(log=log_name, outcome=outcome).inc()

    async def record_witnessed_size(self, log_name: str, size: int) -> None:
        async with self._lock:
            self._sizes[log_name] = size
        if self._g_size is not None:
            self._g_size.labels(log=log_name).set(size)

    async def snapshot(self) -> FeedMetrics:
        # Lightweight copy without exposing internals
        async with self._lock:
            return FeedMetrics(
                rounds=dict(self._rounds),
                rounds_by_log={k: dict(v) for k, v in self._rounds_by_log.items()},
                witnessed_sizes=dict(self._sizes),
            )

"""
In-memory metrics since process start.

Request totals and per-route counts are recorded by the route handlers; the
pipeline stages (recognition, translation, synthesis) count their outcomes,
and recognition also counts attempts per candidate language.
"""

from __future__ import annotations

from collections import Counter, defaultdict

_totals: dict[str, int | float] = {
    "request_count": 0,
    "error_count": 0,
    "sum_latency_ms": 0.0,
}
_routes: dict[str, Counter] = defaultdict(Counter)
_stages: dict[str, Counter] = defaultdict(Counter)
_stt_attempts: Counter = Counter()


def record_request(latency_ms: float, error: bool = False, route: str | None = None) -> None:
    """Record one API request (any status) for the totals and its route."""
    _totals["request_count"] += 1
    _totals["sum_latency_ms"] += latency_ms
    if error:
        _totals["error_count"] += 1
    if route:
        _routes[route]["count"] += 1
        if error:
            _routes[route]["errors"] += 1


def record_stage(stage: str, outcome: str) -> None:
    """Count a pipeline outcome, e.g. ("translation", "skipped")."""
    _stages[stage][outcome] += 1


def record_stt_attempt(language: str) -> None:
    _stt_attempts[language] += 1


def get_metrics() -> dict[str, object]:
    """Return current metrics as dict (for /metrics endpoint)."""
    total = _totals["request_count"]
    avg = _totals["sum_latency_ms"] / total if total else 0.0
    return {
        "request_count": total,
        "error_count": _totals["error_count"],
        "latency_ms_avg": round(avg, 2),
        "routes": {route: {"count": c["count"], "errors": c["errors"]} for route, c in _routes.items()},
        "stages": {stage: dict(c) for stage, c in _stages.items()},
        "stt_attempts": dict(_stt_attempts),
    }


def reset_metrics() -> None:
    """Reset in-memory counters (for tests only)."""
    _totals["request_count"] = 0
    _totals["error_count"] = 0
    _totals["sum_latency_ms"] = 0.0
    _routes.clear()
    _stages.clear()
    _stt_attempts.clear()

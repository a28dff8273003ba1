"""Structured logging (one JSON line per request or pipeline event)."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any


SERVICE_NAME = "voice-translator"


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, default=str))


def log_request(
    route: str,
    latency_ms: float,
    session_id: str | None = None,
    request_id: str | None = None,
    error: bool = False,
) -> None:
    """Emit one JSON line with required fields."""
    _emit(
        {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "route": route,
            "latency_ms": round(latency_ms, 2),
            "session_id": session_id,
            "request_id": request_id,
            "error": error,
        }
    )


def log_event(event: str, **fields: Any) -> None:
    """Emit one JSON line for a pipeline step (recognition attempt, skip, failure)."""
    payload: dict[str, Any] = {
        "ts": datetime.now(tz=timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "event": event,
    }
    payload.update(fields)
    _emit(payload)

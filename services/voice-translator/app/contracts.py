"""
Route contracts: the JSON Schemas in ``contracts/`` keyed by route.

Success bodies have one schema per route; every error body shares
``error_response.schema.json``.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema

ROUTE_SCHEMAS = {
    "/speech-config": "speech_config.schema.json",
    "/speech-to-text": "speech_to_text.schema.json",
    "/translate-and-speak": "translate_and_speak.schema.json",
}
ERROR_SCHEMA = "error_response.schema.json"


def contracts_dir() -> Path:
    return Path(__file__).resolve().parents[3] / "contracts"


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict:
    p = contracts_dir() / name
    return json.loads(p.read_text(encoding="utf-8"))


def schema_for(route: str, status_code: int = 200) -> dict:
    """Schema a response from route with status_code must satisfy."""
    if status_code >= 400:
        return load_schema(ERROR_SCHEMA)
    try:
        name = ROUTE_SCHEMAS[route]
    except KeyError:
        raise ValueError(f"No contract for route {route}") from None
    return load_schema(name)


def validate_response(route: str, payload: Any, status_code: int = 200) -> None:
    """Raise jsonschema.ValidationError when payload breaks the route's contract."""
    jsonschema.validate(payload, schema_for(route, status_code))

"""HTTP client for the voice-translator routes."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import httpx

from app.contracts import validate_response


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = "http://127.0.0.1:8040"
    timeout_s: float = 60.0

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            base_url=os.environ.get("VOICE_TRANSLATOR_URL", cls.base_url),
            timeout_s=float(os.environ.get("VOICE_TRANSLATOR_TIMEOUT_S", str(cls.timeout_s))),
        )


class TranslatorAPIError(Exception):
    """Non-2xx response from the server; carries the server's error body."""

    def __init__(self, status_code: int, error: str, message: str) -> None:
        super().__init__(message or error or f"HTTP {status_code}")
        self.status_code = status_code
        self.error = error
        self.message = message


def _raise_for_error(r: httpx.Response) -> None:
    if r.is_success:
        return
    try:
        body = r.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    raise TranslatorAPIError(
        r.status_code,
        str(body.get("error") or ""),
        str(body.get("message") or r.reason_phrase or ""),
    )


async def get_speech_config(client: httpx.AsyncClient, base_url: str) -> dict[str, Any]:
    r = await client.get(f"{base_url}/speech-config")
    _raise_for_error(r)
    data = r.json()
    validate_response("/speech-config", data)
    return data


async def speech_to_text(
    client: httpx.AsyncClient,
    base_url: str,
    audio: bytes,
    filename: str = "recording.wav",
    content_type: str = "audio/wav",
) -> dict[str, Any]:
    """Upload a recording; response must satisfy the /speech-to-text contract."""
    r = await client.post(
        f"{base_url}/speech-to-text",
        files={"audio": (filename, audio, content_type)},
    )
    _raise_for_error(r)
    data = r.json()
    validate_response("/speech-to-text", data)
    return data


async def translate_and_speak(
    client: httpx.AsyncClient,
    base_url: str,
    original_text: str,
    detected_language: str,
    target_language: str,
) -> dict[str, Any]:
    """Translate + synthesize; response must satisfy the /translate-and-speak contract."""
    r = await client.post(
        f"{base_url}/translate-and-speak",
        json={
            "originalText": original_text,
            "detectedLanguage": detected_language,
            "targetLanguage": target_language,
        },
    )
    _raise_for_error(r)
    data = r.json()
    validate_response("/translate-and-speak", data)
    return data

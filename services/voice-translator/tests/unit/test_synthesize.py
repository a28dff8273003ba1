"""Unit tests for synthesis. Mocked Azure TTS endpoint; no network."""

from __future__ import annotations

import base64

import httpx
import pytest

from app.config import SpeechSettings
from app.errors import SynthesisError
from app.synthesize import (
    DEFAULT_VOICE,
    LANGUAGE_TO_VOICE,
    OUTPUT_FORMAT,
    _new_client,
    build_ssml,
    synthesize,
    voice_for,
)

SPEECH = SpeechSettings(key="test-key", region="eastus")


def test_voice_for_mapped_tags() -> None:
    """Every tag in the table maps to its voice exactly."""
    for tag, voice in LANGUAGE_TO_VOICE.items():
        assert voice_for(tag) == voice
    assert voice_for("ja") == "ja-JP-AoiNeural"


def test_voice_for_unknown_falls_back_to_english() -> None:
    assert voice_for("ko") == DEFAULT_VOICE == "en-US-GuyNeural"
    assert voice_for("zh-cn") == DEFAULT_VOICE
    assert voice_for("") == DEFAULT_VOICE


def test_build_ssml_escapes_text() -> None:
    ssml = build_ssml("Tom & Jerry <3", "fr-FR-AlainNeural")
    assert "Tom &amp; Jerry &lt;3" in ssml
    assert "name='fr-FR-AlainNeural'" in ssml or 'name="fr-FR-AlainNeural"' in ssml
    assert "xml:lang='fr-FR'" in ssml or 'xml:lang="fr-FR"' in ssml


@pytest.mark.asyncio
async def test_synthesize_success_returns_base64() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"fake_mp3_bytes")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        out = await synthesize("Welcome to Tokyo.", "ja", SPEECH, client=client)

    assert base64.b64decode(out) == b"fake_mp3_bytes"
    req = seen[0]
    assert req.url.host == "eastus.tts.speech.microsoft.com"
    assert req.headers["X-Microsoft-OutputFormat"] == OUTPUT_FORMAT
    assert req.headers["Ocp-Apim-Subscription-Key"] == "test-key"
    assert req.headers["Content-Type"] == "application/ssml+xml"
    assert "ja-JP-AoiNeural" in req.content.decode("utf-8")


@pytest.mark.asyncio
async def test_synthesize_unknown_language_uses_english_voice() -> None:
    bodies: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content.decode("utf-8"))
        return httpx.Response(200, content=b"x")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await synthesize("안녕하세요", "ko", SPEECH, client=client)
    assert "en-US-GuyNeural" in bodies[0]


@pytest.mark.asyncio
async def test_synthesize_http_failure_raises() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(401, text="Unauthorized")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(SynthesisError, match="HTTP 401"):
            await synthesize("Hello.", "en", SPEECH, client=client)
    assert calls == 1


@pytest.mark.asyncio
async def test_synthesize_empty_audio_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(SynthesisError, match="Empty audio response"):
            await synthesize("Hello.", "en", SPEECH, client=client)


@pytest.mark.asyncio
async def test_synthesize_transport_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(SynthesisError, match="timed out"):
            await synthesize("Hello.", "en", SPEECH, client=client)


@pytest.mark.asyncio
async def test_synthesize_empty_transport_error_names_exception() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(SynthesisError) as exc_info:
            await synthesize("Hello.", "en", SPEECH, client=client)
    assert exc_info.value.message == "Speech synthesis failed: ReadTimeout"


@pytest.mark.asyncio
async def test_owned_client_has_no_timeout() -> None:
    client = _new_client()
    try:
        assert client.timeout == httpx.Timeout(None)
    finally:
        await client.aclose()

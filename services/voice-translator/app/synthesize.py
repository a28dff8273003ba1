"""Call the Azure Speech TTS REST endpoint; return MP3 audio as base64."""

from __future__ import annotations

import base64
from xml.sax.saxutils import escape, quoteattr

import httpx

from app import logging_utils as logging_utils_module
from app import metrics as metrics_module
from app.config import SpeechSettings
from app.errors import SynthesisError

TTS_URL = "https://{region}.tts.speech.microsoft.com/cognitiveservices/v1"
OUTPUT_FORMAT = "audio-16khz-32kbitrate-mono-mp3"

# Target language tag -> neural voice
LANGUAGE_TO_VOICE = {
    "en": "en-US-GuyNeural",
    "ja": "ja-JP-AoiNeural",
    "zh-CN": "zh-CN-XiaoxuanNeural",
    "fr-FR": "fr-FR-AlainNeural",
    "hi-IN": "hi-IN-SwaraNeural",
}
DEFAULT_VOICE = LANGUAGE_TO_VOICE["en"]


def voice_for(language: str) -> str:
    """Mapped voice for a target tag; English voice for unknown tags."""
    return LANGUAGE_TO_VOICE.get(language, DEFAULT_VOICE)


def build_ssml(text: str, voice: str) -> str:
    locale = "-".join(voice.split("-")[:2])
    return (
        f"<speak version='1.0' xml:lang={quoteattr(locale)}>"
        f"<voice name={quoteattr(voice)}>{escape(text)}</voice>"
        "</speak>"
    )


def _new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=None)


async def synthesize(
    text: str,
    language: str,
    speech: SpeechSettings,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Synthesize text in the voice mapped to language. Raises SynthesisError (no retry)."""
    try:
        if client is not None:
            return await _synthesize_with(client, text, language, speech)
        async with _new_client() as owned:
            return await _synthesize_with(owned, text, language, speech)
    except SynthesisError:
        metrics_module.record_stage("synthesis", "failed")
        raise


async def _synthesize_with(
    client: httpx.AsyncClient, text: str, language: str, speech: SpeechSettings
) -> str:
    voice = voice_for(language)
    try:
        r = await client.post(
            TTS_URL.format(region=speech.region),
            headers={
                "Ocp-Apim-Subscription-Key": speech.key,
                "Content-Type": "application/ssml+xml",
                "X-Microsoft-OutputFormat": OUTPUT_FORMAT,
                "User-Agent": logging_utils_module.SERVICE_NAME,
            },
            content=build_ssml(text, voice).encode("utf-8"),
        )
    except httpx.HTTPError as e:
        raise SynthesisError(f"Speech synthesis failed: {str(e) or type(e).__name__}") from e

    if not r.is_success:
        raise SynthesisError(f"Speech synthesis failed: HTTP {r.status_code}: {r.text}")
    if not r.content:
        raise SynthesisError("Speech synthesis failed: Empty audio response")

    logging_utils_module.log_event("synthesized", voice=voice, bytes=len(r.content))
    metrics_module.record_stage("synthesis", "synthesized")
    return base64.b64encode(r.content).decode("ascii")

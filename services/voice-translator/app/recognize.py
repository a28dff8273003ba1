"""
Speech recognition against the Azure Speech REST endpoint.

The REST endpoint has no multi-language auto-detect, so the spoken language is
found by trying a fixed list of candidate languages one at a time. Calls are
sequential to stay under the provider's concurrency limit.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Sequence

import httpx

from app import logging_utils as logging_utils_module
from app import metrics as metrics_module
from app.config import RecognitionSettings, SpeechSettings
from app.errors import RecognitionExhaustedError, UpstreamTransportError
from app.models import AudioPayload, RecognitionAttempt, RecognitionOutcome
from app.wav import upload_content_type

CANDIDATE_LANGUAGES: tuple[str, ...] = ("ko-KR", "en-US", "ja-JP", "zh-CN", "fr-FR", "hi-IN")

STT_URL = (
    "https://{region}.stt.speech.microsoft.com"
    "/speech/recognition/conversation/cognitiveservices/v1"
)

MAX_REPORTED_ERRORS = 3

AttemptFn = Callable[[str], Awaitable[RecognitionAttempt]]


def _first_nbest(data: dict[str, Any]) -> dict[str, Any]:
    nbest = data.get("NBest")
    if isinstance(nbest, list) and nbest and isinstance(nbest[0], dict):
        return nbest[0]
    return {}


def parse_recognition(language: str, status_code: int, data: dict[str, Any]) -> RecognitionAttempt:
    """Map a detailed-format recognition body to an attempt."""
    best = _first_nbest(data)
    text = data.get("DisplayText") or data.get("Text") or best.get("Display") or ""
    confidence = data.get("Confidence")
    if confidence is None:
        confidence = best.get("Confidence")
    return RecognitionAttempt(
        language=language,
        status_code=status_code,
        recognition_status=data.get("RecognitionStatus"),
        text=str(text).strip(),
        confidence=float(confidence or 0.0),
        raw=data,
    )


async def recognize_in_language(
    client: httpx.AsyncClient,
    speech: SpeechSettings,
    payload: AudioPayload,
    language: str,
    timeout_s: float = 15.0,
) -> RecognitionAttempt:
    """One recognition call scoped to a single language. Raises UpstreamTransportError."""
    try:
        r = await client.post(
            STT_URL.format(region=speech.region),
            params={"language": language, "format": "detailed"},
            headers={
                "Ocp-Apim-Subscription-Key": speech.key,
                "Content-Type": upload_content_type(payload),
                "Accept": "application/json",
            },
            content=payload.data,
            timeout=timeout_s,
        )
    except httpx.HTTPError as e:
        raise UpstreamTransportError(str(e) or type(e).__name__) from e

    if not r.is_success:
        raise UpstreamTransportError(f"HTTP {r.status_code}: {r.text}", status_code=r.status_code)
    try:
        data = r.json()
    except ValueError as e:
        raise UpstreamTransportError(f"Invalid JSON response: {e}", status_code=r.status_code) from e
    if not isinstance(data, dict):
        raise UpstreamTransportError("Invalid JSON response: expected object", status_code=r.status_code)
    try:
        return parse_recognition(language, r.status_code, data)
    except (TypeError, ValueError) as e:
        raise UpstreamTransportError(f"Invalid JSON response: {e}", status_code=r.status_code) from e


def _exhausted(languages: Sequence[str], errors: list[str]) -> RecognitionExhaustedError:
    detail = (
        "Errors: " + ", ".join(errors[:MAX_REPORTED_ERRORS])
        if errors
        else "All languages returned Success but no text."
    )
    message = f"No speech recognized. Tried languages: {', '.join(languages)}. {detail}"
    return RecognitionExhaustedError(message, list(languages), list(errors))


async def select_language(
    attempt: AttemptFn,
    languages: Sequence[str] = CANDIDATE_LANGUAGES,
    settings: RecognitionSettings | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> RecognitionOutcome:
    """
    Try each candidate language once, in order, and pick the best transcript.

    A result replaces the current best only on strictly higher confidence, so
    ties keep the earlier language. Iteration stops at the first result whose
    confidence reaches the early-exit threshold. A rate-limited language is
    skipped after a pause, not retried.
    """
    settings = settings or RecognitionSettings()
    best: RecognitionOutcome | None = None
    errors: list[str] = []

    for lang in languages:
        metrics_module.record_stt_attempt(lang)
        try:
            result = await attempt(lang)
        except UpstreamTransportError as e:
            if e.rate_limited:
                errors.append(f"{lang}: HTTP 429: rate limited")
                metrics_module.record_stage("recognition", "rate_limited")
                logging_utils_module.log_event("stt_rate_limited", language=lang)
                await sleep(settings.rate_limit_pause_s)
                continue
            errors.append(f"{lang}: {e.message}")
            logging_utils_module.log_event("stt_attempt_failed", language=lang, message=e.message)
            continue

        logging_utils_module.log_event(
            "stt_attempt",
            language=lang,
            status=result.recognition_status,
            has_text=bool(result.text),
            confidence=result.confidence,
        )
        if not result.succeeded:
            if result.recognition_status == "Success":
                errors.append(f"{lang}: Success but no text returned")
            else:
                errors.append(f"{lang}: {result.recognition_status}")
            continue

        if best is None or result.confidence > best.confidence:
            best = RecognitionOutcome(language=lang, text=result.text, confidence=result.confidence)
        if result.confidence >= settings.early_exit_confidence:
            break

    if best is None:
        err = _exhausted(languages, errors)
        metrics_module.record_stage("recognition", "exhausted")
        logging_utils_module.log_event("stt_exhausted", languages=list(languages), errors=errors)
        raise err
    logging_utils_module.log_event(
        "stt_selected", language=best.language, confidence=best.confidence
    )
    metrics_module.record_stage("recognition", "selected")
    return best


async def recognize(
    payload: AudioPayload,
    speech: SpeechSettings,
    settings: RecognitionSettings | None = None,
    client: httpx.AsyncClient | None = None,
    languages: Sequence[str] = CANDIDATE_LANGUAGES,
) -> RecognitionOutcome:
    """Recognize speech in an unknown language (one call per candidate)."""
    settings = settings or RecognitionSettings.from_env()
    if client is not None:
        return await _recognize_with(client, payload, speech, settings, languages)
    async with httpx.AsyncClient(timeout=settings.timeout_s) as owned:
        return await _recognize_with(owned, payload, speech, settings, languages)


async def _recognize_with(
    client: httpx.AsyncClient,
    payload: AudioPayload,
    speech: SpeechSettings,
    settings: RecognitionSettings,
    languages: Sequence[str],
) -> RecognitionOutcome:
    async def attempt(lang: str) -> RecognitionAttempt:
        return await recognize_in_language(client, speech, payload, lang, settings.timeout_s)

    return await select_language(attempt, languages, settings)

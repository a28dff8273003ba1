from __future__ import annotations

import time

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app import logging_utils as logging_utils_module
from app import metrics as metrics_module
from app import recognize as recognize_module
from app import synthesize as synthesize_module
from app import translate as translate_module
from app.config import RecognitionSettings, SpeechSettings, TranslatorSettings
from app.errors import TranslatorError, ValidationError
from app.models import (
    AudioPayload,
    ErrorResponse,
    SpeechConfigResponse,
    SpeechToTextResponse,
    TranslateAndSpeakRequest,
    TranslateAndSpeakResponse,
)


app = FastAPI(title="voice-translator", version="0.1.0")


def _session_request_ids(request: Request) -> tuple[str | None, str | None]:
    """Read x-session-id and x-request-id from headers; default None."""
    session_id = request.headers.get("x-session-id") or None
    request_id = request.headers.get("x-request-id") or None
    return session_id, request_id


def _record(request: Request, t0: float, error: bool) -> None:
    route = request.url.path
    session_id, request_id = _session_request_ids(request)
    latency_ms = (time.perf_counter() - t0) * 1000
    metrics_module.record_request(latency_ms=latency_ms, error=error, route=route)
    logging_utils_module.log_request(
        route=route,
        latency_ms=latency_ms,
        session_id=session_id,
        request_id=request_id,
        error=error,
    )


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(TranslatorError)
async def translator_error_handler(request: Request, exc: TranslatorError) -> JSONResponse:
    logging_utils_module.log_event(
        "request_failed", route=request.url.path, error=exc.label, message=exc.message
    )
    return _error_response(exc.status_code, exc.label, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(400, ValidationError.label, "Malformed request body")


@app.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> dict:
    """Lightweight JSON metrics (in-memory since process start)."""
    return metrics_module.get_metrics()


@app.get("/speech-config", response_model=SpeechConfigResponse)
def speech_config(request: Request):
    """
    Return the Speech key and region to the browser.

    This hands long-lived credentials to the client; a production deployment
    should mint short-lived tokens server-side instead.
    """
    t0 = time.perf_counter()
    speech = SpeechSettings.from_env()
    if not speech.configured:
        _record(request, t0, error=True)
        return _error_response(
            500,
            "Speech service not configured",
            "SPEECH_KEY and SPEECH_REGION must be set",
        )
    _record(request, t0, error=False)
    return SpeechConfigResponse(key=speech.key, region=speech.region)


@app.post("/speech-to-text", response_model=SpeechToTextResponse)
async def speech_to_text(request: Request, audio: UploadFile | None = File(default=None)):
    """Transcribe an uploaded recording, detecting its language from the candidate list."""
    t0 = time.perf_counter()
    try:
        speech = SpeechSettings.from_env()
        speech.ensure_configured()
        if audio is None:
            raise ValidationError("Audio file is required")

        payload = AudioPayload(
            data=await audio.read(),
            content_type=audio.content_type or "application/octet-stream",
            filename=audio.filename,
        )
        outcome = await recognize_module.recognize(
            payload, speech, RecognitionSettings.from_env()
        )
        result = SpeechToTextResponse(text=outcome.text, detectedLanguage=outcome.short_language)
    except TranslatorError:
        _record(request, t0, error=True)
        raise
    except Exception as e:
        _record(request, t0, error=True)
        return _error_response(500, "Internal Server Error", str(e) or "Unknown error occurred")
    _record(request, t0, error=False)
    return result


async def _read_translate_request(request: Request) -> TranslateAndSpeakRequest:
    """Parse the JSON body; runs after the configuration checks so those take precedence."""
    try:
        body = await request.json()
        return TranslateAndSpeakRequest.model_validate(body)
    except ValueError as e:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
        raise ValidationError("Malformed request body") from e


@app.post("/translate-and-speak", response_model=TranslateAndSpeakResponse)
async def translate_and_speak(request: Request):
    """Translate a transcript into the target language and synthesize it."""
    t0 = time.perf_counter()
    try:
        speech = SpeechSettings.from_env()
        speech.ensure_configured()
        translator = TranslatorSettings.from_env()
        translator.ensure_configured()
        payload = await _read_translate_request(request)

        if not payload.originalText:
            raise ValidationError("Original text is required")
        if not payload.detectedLanguage:
            raise ValidationError("Detected language is required")
        if not payload.targetLanguage:
            raise ValidationError("Target language is required")

        translated = await translate_module.translate(
            payload.originalText,
            payload.detectedLanguage,
            payload.targetLanguage,
            translator,
        )
        audio_b64 = await synthesize_module.synthesize(translated, payload.targetLanguage, speech)
        result = TranslateAndSpeakResponse(
            originalText=payload.originalText,
            detectedLanguage=payload.detectedLanguage,
            translatedText=translated,
            audioBase64=audio_b64,
        )
    except TranslatorError:
        _record(request, t0, error=True)
        raise
    except Exception as e:
        _record(request, t0, error=True)
        return _error_response(500, "Internal Server Error", str(e) or "Unknown error occurred")
    _record(request, t0, error=False)
    return result


def main() -> None:
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8040, reload=True)


if __name__ == "__main__":
    main()

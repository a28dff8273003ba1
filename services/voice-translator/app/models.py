"""Domain types and request/response models for the voice-translator routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field


def primary_subtag(language: str) -> str:
    """Leading component of a language tag ("ko-KR" -> "ko"); "en" when empty."""
    return language.split("-")[0] or "en"


@dataclass(frozen=True)
class AudioPayload:
    """Uploaded audio as received; never mutated."""

    data: bytes
    content_type: str
    filename: str | None = None


@dataclass
class RecognitionAttempt:
    """One recognition call for one candidate language."""

    language: str
    status_code: int | None = None
    recognition_status: str | None = None
    text: str = ""
    confidence: float = 0.0
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.recognition_status == "Success" and bool(self.text)


@dataclass(frozen=True)
class RecognitionOutcome:
    """The attempt selected by the retry policy."""

    language: str
    text: str
    confidence: float

    @property
    def short_language(self) -> str:
        return primary_subtag(self.language)


class ErrorResponse(BaseModel):
    error: str
    message: str


class SpeechConfigResponse(BaseModel):
    key: str
    region: str


class SpeechToTextResponse(BaseModel):
    text: str = Field(min_length=1, description="Recognized transcript")
    detectedLanguage: str = Field(min_length=1, description="Primary subtag of the winning language")


class TranslateAndSpeakRequest(BaseModel):
    """JSON body of /translate-and-speak; fields are checked by the route so
    missing ones produce the 400 validation body instead of a 422."""

    originalText: Optional[str] = None
    detectedLanguage: Optional[str] = None
    targetLanguage: Optional[str] = None


class TranslateAndSpeakResponse(BaseModel):
    originalText: str
    detectedLanguage: str
    translatedText: str
    audioBase64: str = Field(description="Synthesized MP3 audio, base64-encoded")

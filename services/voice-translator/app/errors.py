"""Error taxonomy; every error maps to an HTTP status and an ``{error, message}`` body."""

from __future__ import annotations


class TranslatorError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    label = "Internal Server Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(TranslatorError):
    """Required credentials are missing from the environment."""

    label = "Configuration Error"


class ValidationError(TranslatorError):
    """A required request field is missing."""

    status_code = 400
    label = "Validation Error"


class UpstreamTransportError(TranslatorError):
    """A provider call failed at the HTTP/transport level."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = status_code

    @property
    def rate_limited(self) -> bool:
        return self.upstream_status == 429


class RecognitionExhaustedError(TranslatorError):
    """No candidate language produced recognized text."""

    def __init__(self, message: str, languages: list[str], errors: list[str]) -> None:
        super().__init__(message)
        self.languages = languages
        self.errors = errors


class TranslationError(TranslatorError):
    """Translation call failed or returned nothing."""


class SynthesisError(TranslatorError):
    """Speech synthesis call failed or returned no audio."""

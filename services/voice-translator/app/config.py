"""Provider settings read from the environment (per request, never cached)."""

from __future__ import annotations

import os
from dataclasses import dataclass

from app.errors import ConfigurationError


def _env(name: str) -> str:
    return (os.environ.get(name) or "").strip()


@dataclass(frozen=True)
class SpeechSettings:
    key: str = ""
    region: str = ""

    @classmethod
    def from_env(cls) -> "SpeechSettings":
        return cls(key=_env("SPEECH_KEY"), region=_env("SPEECH_REGION"))

    @property
    def configured(self) -> bool:
        return bool(self.key and self.region)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("Azure Speech Service credentials are not configured")


@dataclass(frozen=True)
class TranslatorSettings:
    key: str = ""
    endpoint: str = ""
    deployment: str = ""
    api_version: str = "2024-06-01"

    @classmethod
    def from_env(cls) -> "TranslatorSettings":
        return cls(
            key=_env("AZURE_OPENAI_KEY"),
            endpoint=_env("AZURE_OPENAI_ENDPOINT"),
            deployment=_env("AZURE_OPENAI_DEPLOYMENT"),
            api_version=_env("AZURE_OPENAI_API_VERSION") or cls.api_version,
        )

    @property
    def configured(self) -> bool:
        return bool(self.key and self.endpoint and self.deployment)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("Azure OpenAI credentials are not configured")


@dataclass(frozen=True)
class RecognitionSettings:
    rate_limit_pause_s: float = 1.0
    early_exit_confidence: float = 0.8
    timeout_s: float = 15.0

    @classmethod
    def from_env(cls) -> "RecognitionSettings":
        return cls(
            rate_limit_pause_s=float(
                os.environ.get("STT_RATE_LIMIT_PAUSE_S", str(cls.rate_limit_pause_s))
            ),
            early_exit_confidence=float(
                os.environ.get("STT_EARLY_EXIT_CONFIDENCE", str(cls.early_exit_confidence))
            ),
            timeout_s=float(os.environ.get("STT_TIMEOUT_S", str(cls.timeout_s))),
        )

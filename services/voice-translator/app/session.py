"""
Client-side orchestration: record -> transcribe -> translate -> synthesize.

The session is an explicit state machine. Transitions only happen through
the public methods; a busy session rejects new work instead of queueing it.
"""

from __future__ import annotations

import base64
from enum import Enum
from typing import Any, Protocol

import httpx

from app import client as client_module
from app import logging_utils as logging_utils_module


class State(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    TRANSLATING = "translating"
    RESULT = "result"


BUSY_STATES = frozenset({State.TRANSCRIBING, State.TRANSLATING})


class SessionBusyError(RuntimeError):
    """A transcription or translation is already in flight."""


class SessionStateError(RuntimeError):
    """The requested transition is not valid from the current state."""


class AudioSource(Protocol):
    """Something that records audio (a microphone, a file, a test double)."""

    def start(self) -> None: ...

    def stop(self) -> bytes: ...

    def release(self) -> None: ...


class Backend(Protocol):
    async def speech_to_text(self, audio: bytes) -> dict[str, Any]: ...

    async def translate_and_speak(
        self, original_text: str, detected_language: str, target_language: str
    ) -> dict[str, Any]: ...


class HTTPBackend:
    """Backend that talks to a running voice-translator server."""

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def speech_to_text(self, audio: bytes) -> dict[str, Any]:
        return await client_module.speech_to_text(self._client, self._base_url, audio)

    async def translate_and_speak(
        self, original_text: str, detected_language: str, target_language: str
    ) -> dict[str, Any]:
        return await client_module.translate_and_speak(
            self._client, self._base_url, original_text, detected_language, target_language
        )


class TranslatorSession:
    def __init__(self, backend: Backend, source: AudioSource, target_language: str = "en") -> None:
        self.backend = backend
        self.source = source
        self.target_language = target_language
        self.state = State.IDLE
        self.error: str | None = None
        self._clear_results()

    def _clear_results(self) -> None:
        self.original_text = ""
        self.detected_language = ""
        self.translated_text = ""
        self.audio_base64: str | None = None

    @property
    def busy(self) -> bool:
        return self.state in BUSY_STATES

    @property
    def audio_bytes(self) -> bytes | None:
        """Decoded synthesized audio, ready for playback."""
        if not self.audio_base64:
            return None
        return base64.b64decode(self.audio_base64)

    def _guard_busy(self) -> None:
        if self.busy:
            raise SessionBusyError(f"Session is busy ({self.state.value})")

    def _fail(self, message: str) -> None:
        self.error = message
        self.state = State.IDLE
        logging_utils_module.log_event("session_failed", message=message)

    def start_recording(self) -> None:
        """Begin capture; clears every prior result."""
        self._guard_busy()
        if self.state is State.RECORDING:
            raise SessionStateError("Already recording")
        self._clear_results()
        self.error = None
        try:
            self.source.start()
        except Exception as e:
            self.source.release()
            self._fail(str(e) or "Failed to start recording")
            return
        self.state = State.RECORDING

    async def stop_recording(self) -> None:
        """Stop capture (always releasing the source) and run the pipeline."""
        if self.state is not State.RECORDING:
            raise SessionStateError("Not recording")
        try:
            audio = self.source.stop()
        except Exception as e:
            self._fail(str(e) or "Failed to stop recording")
            return
        finally:
            self.source.release()

        if not audio:
            self._fail("No audio recorded. Please record audio first.")
            return
        await self._transcribe(audio)
        if self.original_text and self.error is None:
            await self._translate()

    async def change_target_language(self, language: str) -> None:
        """
        Select a new target. With a transcript in hand (a result on screen, or
        a failed translation), re-translate it without re-transcribing.
        """
        self._guard_busy()
        changed = language != self.target_language
        self.target_language = language
        if not changed or not self.original_text:
            return
        if self.state is State.RESULT or (self.state is State.IDLE and self.error):
            await self._translate()

    def reset(self) -> None:
        self._guard_busy()
        if self.state is State.RECORDING:
            self.source.release()
        self._clear_results()
        self.error = None
        self.state = State.IDLE

    async def _transcribe(self, audio: bytes) -> None:
        self.state = State.TRANSCRIBING
        self.error = None
        try:
            data = await self.backend.speech_to_text(audio)
        except Exception as e:
            self._fail(f"Speech recognition failed: {e}")
            return
        self.original_text = data["text"]
        self.detected_language = data["detectedLanguage"]

    async def _translate(self) -> None:
        self.state = State.TRANSLATING
        self.error = None
        self.translated_text = ""
        self.audio_base64 = None
        try:
            data = await self.backend.translate_and_speak(
                self.original_text, self.detected_language, self.target_language
            )
        except Exception as e:
            self._fail(str(e) or "Translation failed")
            return
        self.translated_text = data["translatedText"]
        self.audio_base64 = data["audioBase64"]
        self.state = State.RESULT

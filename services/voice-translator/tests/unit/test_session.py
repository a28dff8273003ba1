"""Client session state machine with a fake backend and audio source."""

from __future__ import annotations

import base64
from typing import Any
from unittest.mock import AsyncMock

import pytest

from app.session import SessionBusyError, SessionStateError, State, TranslatorSession


class FakeSource:
    def __init__(self, audio: bytes = b"RIFF-audio", fail_on_stop: bool = False) -> None:
        self.audio = audio
        self.fail_on_stop = fail_on_stop
        self.started = 0
        self.released = 0

    def start(self) -> None:
        self.started += 1

    def stop(self) -> bytes:
        if self.fail_on_stop:
            raise RuntimeError("device lost")
        return self.audio

    def release(self) -> None:
        self.released += 1


def _backend(
    stt: dict[str, Any] | Exception | None = None,
    tts: dict[str, Any] | Exception | None = None,
) -> Any:
    backend = AsyncMock()
    if isinstance(stt, Exception):
        backend.speech_to_text.side_effect = stt
    else:
        backend.speech_to_text.return_value = stt or {"text": "안녕하세요", "detectedLanguage": "ko"}

    async def translate_and_speak(text: str, src: str, tgt: str) -> dict[str, Any]:
        if isinstance(tts, Exception):
            raise tts
        return tts or {
            "originalText": text,
            "detectedLanguage": src,
            "translatedText": f"<{tgt}>",
            "audioBase64": base64.b64encode(b"mp3").decode("ascii"),
        }

    backend.translate_and_speak = AsyncMock(side_effect=translate_and_speak)
    return backend


@pytest.mark.asyncio
async def test_full_pipeline_reaches_result() -> None:
    source = FakeSource()
    backend = _backend()
    s = TranslatorSession(backend, source, target_language="en")

    s.start_recording()
    assert s.state is State.RECORDING
    await s.stop_recording()

    assert s.state is State.RESULT
    assert s.original_text == "안녕하세요"
    assert s.detected_language == "ko"
    assert s.translated_text == "<en>"
    assert s.audio_bytes == b"mp3"
    assert source.released == 1
    backend.translate_and_speak.assert_awaited_once_with("안녕하세요", "ko", "en")


@pytest.mark.asyncio
async def test_target_change_retranslates_without_retranscribing() -> None:
    backend = _backend()
    s = TranslatorSession(backend, FakeSource())
    s.start_recording()
    await s.stop_recording()

    await s.change_target_language("ja")

    assert s.state is State.RESULT
    assert s.translated_text == "<ja>"
    backend.speech_to_text.assert_awaited_once()
    assert backend.translate_and_speak.await_count == 2


@pytest.mark.asyncio
async def test_target_change_while_idle_only_stores_selection() -> None:
    backend = _backend()
    s = TranslatorSession(backend, FakeSource())
    await s.change_target_language("fr-FR")
    assert s.target_language == "fr-FR"
    assert s.state is State.IDLE
    backend.translate_and_speak.assert_not_awaited()


@pytest.mark.asyncio
async def test_new_recording_clears_previous_results() -> None:
    s = TranslatorSession(_backend(), FakeSource())
    s.start_recording()
    await s.stop_recording()
    assert s.translated_text

    s.start_recording()
    assert s.original_text == ""
    assert s.translated_text == ""
    assert s.audio_base64 is None
    assert s.error is None


@pytest.mark.asyncio
async def test_source_released_when_stop_fails() -> None:
    source = FakeSource(fail_on_stop=True)
    s = TranslatorSession(_backend(), source)
    s.start_recording()
    await s.stop_recording()
    assert source.released == 1
    assert s.state is State.IDLE
    assert s.error == "device lost"


@pytest.mark.asyncio
async def test_empty_recording_sets_error() -> None:
    backend = _backend()
    s = TranslatorSession(backend, FakeSource(audio=b""))
    s.start_recording()
    await s.stop_recording()
    assert s.state is State.IDLE
    assert "No audio recorded" in (s.error or "")
    backend.speech_to_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_transcription_failure_keeps_session_usable() -> None:
    backend = _backend(stt=RuntimeError("No speech recognized"))
    s = TranslatorSession(backend, FakeSource())
    s.start_recording()
    await s.stop_recording()
    assert s.state is State.IDLE
    assert s.error == "Speech recognition failed: No speech recognized"
    backend.translate_and_speak.assert_not_awaited()

    backend.speech_to_text.side_effect = None
    backend.speech_to_text.return_value = {"text": "hello", "detectedLanguage": "en"}
    s.start_recording()
    await s.stop_recording()
    assert s.state is State.RESULT
    assert s.error is None


@pytest.mark.asyncio
async def test_translation_failure_keeps_transcript() -> None:
    s = TranslatorSession(_backend(tts=RuntimeError("Speech synthesis failed")), FakeSource())
    s.start_recording()
    await s.stop_recording()
    assert s.state is State.IDLE
    assert s.original_text == "안녕하세요"
    assert s.error == "Speech synthesis failed"


def test_busy_session_rejects_triggers() -> None:
    s = TranslatorSession(_backend(), FakeSource())
    s.state = State.TRANSLATING
    with pytest.raises(SessionBusyError):
        s.start_recording()
    with pytest.raises(SessionBusyError):
        s.reset()


@pytest.mark.asyncio
async def test_busy_session_rejects_target_change() -> None:
    s = TranslatorSession(_backend(), FakeSource())
    s.state = State.TRANSCRIBING
    with pytest.raises(SessionBusyError):
        await s.change_target_language("ja")


@pytest.mark.asyncio
async def test_invalid_transitions() -> None:
    s = TranslatorSession(_backend(), FakeSource())
    with pytest.raises(SessionStateError):
        await s.stop_recording()
    s.start_recording()
    with pytest.raises(SessionStateError):
        s.start_recording()


@pytest.mark.asyncio
async def test_reset_returns_to_idle() -> None:
    source = FakeSource()
    s = TranslatorSession(_backend(), source)
    s.start_recording()
    await s.stop_recording()
    s.reset()
    assert s.state is State.IDLE
    assert s.original_text == "" and s.translated_text == ""

    s.start_recording()
    s.reset()
    assert s.state is State.IDLE
    assert source.released == 2


@pytest.mark.asyncio
async def test_target_change_after_translation_failure_retries_translation() -> None:
    backend = _backend()
    good = backend.translate_and_speak.side_effect

    async def fail_once(text: str, src: str, tgt: str) -> dict[str, Any]:
        if backend.translate_and_speak.await_count == 1:
            raise RuntimeError("Translation failed: deployment not found")
        return await good(text, src, tgt)

    backend.translate_and_speak.side_effect = fail_once
    s = TranslatorSession(backend, FakeSource())
    s.start_recording()
    await s.stop_recording()
    assert s.state is State.IDLE
    assert s.error == "Translation failed: deployment not found"

    await s.change_target_language("ja")

    assert s.state is State.RESULT
    assert s.error is None
    assert s.original_text == "안녕하세요"
    assert s.translated_text == "<ja>"
    backend.speech_to_text.assert_awaited_once()
    assert backend.translate_and_speak.await_count == 2


@pytest.mark.asyncio
async def test_target_change_after_transcription_failure_only_stores_selection() -> None:
    backend = _backend(stt=RuntimeError("No speech recognized"))
    s = TranslatorSession(backend, FakeSource())
    s.start_recording()
    await s.stop_recording()

    await s.change_target_language("ja")

    assert s.state is State.IDLE
    assert s.target_language == "ja"
    backend.translate_and_speak.assert_not_awaited()

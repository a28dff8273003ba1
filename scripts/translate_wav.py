#!/usr/bin/env python3
"""
Translate a recorded WAV file through a running voice-translator server.

Usage (from repo root, with the server started via `python -m app.main` in services/voice-translator):
  python scripts/translate_wav.py recording.wav --target ja --out translated.mp3

Pass --check to confirm the server has speech credentials first.
Optional: VOICE_TRANSLATOR_URL (default http://127.0.0.1:8040).
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import httpx

from app.client import ClientConfig, TranslatorAPIError, get_speech_config
from app.session import HTTPBackend, State, TranslatorSession
from app.wav import to_mono_pcm16


class FileSource:
    """AudioSource that "records" by reading a WAV file and re-encoding it to mono PCM16."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._started = False

    def start(self) -> None:
        if not self.path.is_file():
            raise FileNotFoundError(f"No such file: {self.path}")
        self._started = True

    def stop(self) -> bytes:
        if not self._started:
            return b""
        return to_mono_pcm16(self.path.read_bytes())

    def release(self) -> None:
        self._started = False


async def _run(args: argparse.Namespace) -> int:
    cfg = ClientConfig.from_env()
    base_url = args.url or cfg.base_url
    async with httpx.AsyncClient(timeout=cfg.timeout_s) as client:
        if args.check:
            try:
                config = await get_speech_config(client, base_url)
            except TranslatorAPIError as e:
                print(f"Server not ready: {e}", file=sys.stderr)
                return 1
            print(f"Speech service configured (region {config['region']})")
        session = TranslatorSession(
            HTTPBackend(client, base_url), FileSource(Path(args.wav)), target_language=args.target
        )
        session.start_recording()
        if session.state is State.RECORDING:
            await session.stop_recording()
        if session.state is not State.RESULT:
            print(f"Failed: {session.error}", file=sys.stderr)
            return 1

        print(f"[{session.detected_language}] {session.original_text}")
        print(f"[{session.target_language}] {session.translated_text}")
        out = Path(args.out)
        out.write_bytes(session.audio_bytes or b"")
        print(f"Wrote {out}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("wav", help="Input WAV file")
    parser.add_argument("--target", default="en", help="Target language tag (en, ja, zh-CN, fr-FR, hi-IN)")
    parser.add_argument("--out", default="translated.mp3", help="Where to write synthesized MP3")
    parser.add_argument("--url", default=None, help="Server base URL")
    parser.add_argument(
        "--check", action="store_true", help="Check /speech-config on the server before uploading"
    )
    return asyncio.run(_run(parser.parse_args()))


if __name__ == "__main__":
    sys.exit(main())

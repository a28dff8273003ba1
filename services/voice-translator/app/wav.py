"""PCM16 WAV encoding for uploads, plus header sniffing for the recognition content type."""

from __future__ import annotations

import io
import struct
import wave
from typing import Sequence

from app.models import AudioPayload

DEFAULT_SAMPLE_RATE = 16000
HEADER_SIZE = 44
BITS_PER_SAMPLE = 16


def _to_int16(sample: float) -> int:
    s = max(-1.0, min(1.0, sample))
    return int(s * 0x8000) if s < 0 else int(s * 0x7FFF)


def downmix(channels: Sequence[Sequence[float]]) -> list[float]:
    """Average all channels into one mono channel."""
    if not channels:
        return []
    n = min(len(c) for c in channels)
    k = len(channels)
    return [sum(c[i] for c in channels) / k for i in range(n)]


def encode_wav(channels: Sequence[Sequence[float]], sample_rate: int = DEFAULT_SAMPLE_RATE) -> bytes:
    """
    Encode float samples (one sequence per channel, values in [-1, 1]) as a
    RIFF/WAVE file with 16-bit little-endian PCM, channels interleaved.
    Samples outside [-1, 1] are clamped.
    """
    if not channels:
        raise ValueError("At least one channel is required")
    if sample_rate <= 0:
        raise ValueError("sample_rate must be positive")
    num_channels = len(channels)
    length = min(len(c) for c in channels)
    block_align = num_channels * (BITS_PER_SAMPLE // 8)
    byte_rate = sample_rate * block_align
    data_size = length * block_align

    header = b"RIFF" + struct.pack("<I", HEADER_SIZE + data_size - 8) + b"WAVE"
    header += b"fmt " + struct.pack(
        "<IHHIIHH", 16, 1, num_channels, sample_rate, byte_rate, block_align, BITS_PER_SAMPLE
    )
    header += b"data" + struct.pack("<I", data_size)

    frames = [_to_int16(channels[ch][i]) for i in range(length) for ch in range(num_channels)]
    return header + struct.pack(f"<{len(frames)}h", *frames)


def _decode_frames(raw: bytes, sample_width: int) -> list[float]:
    if sample_width == 1:
        return [(b - 128) / 128.0 for b in raw]
    if sample_width == 2:
        count = len(raw) // 2
        return [s / 32768.0 for s in struct.unpack(f"<{count}h", raw[: count * 2])]
    if sample_width == 4:
        count = len(raw) // 4
        return [s / 2147483648.0 for s in struct.unpack(f"<{count}i", raw[: count * 4])]
    raise ValueError(f"Unsupported sample width: {sample_width * 8} bits")


def to_mono_pcm16(data: bytes) -> bytes:
    """
    Re-encode a PCM WAV file as mono 16-bit at its original sample rate.
    Already-mono 16-bit input is returned unchanged.
    """
    with wave.open(io.BytesIO(data), "rb") as wf:
        num_channels = wf.getnchannels()
        sample_width = wf.getsampwidth()
        sample_rate = wf.getframerate()
        raw = wf.readframes(wf.getnframes())
    if num_channels == 1 and sample_width == 2:
        return data
    interleaved = _decode_frames(raw, sample_width)
    channels = [interleaved[ch::num_channels] for ch in range(num_channels)]
    return encode_wav([downmix(channels)], sample_rate)


def sniff_sample_rate(data: bytes) -> int | None:
    """Sample rate from a RIFF/WAVE header, or None for any other container."""
    if len(data) < 28 or data[:4] != b"RIFF" or data[8:12] != b"WAVE":
        return None
    # Walk chunks; "fmt " is usually first but not guaranteed.
    offset = 12
    while offset + 8 <= len(data):
        chunk_id = data[offset : offset + 4]
        (chunk_size,) = struct.unpack_from("<I", data, offset + 4)
        if chunk_id == b"fmt ":
            if offset + 16 > len(data):
                return None
            (rate,) = struct.unpack_from("<I", data, offset + 12)
            return rate or None
        offset += 8 + chunk_size + (chunk_size & 1)
    return None


def upload_content_type(payload: AudioPayload) -> str:
    """Content-Type sent to the recognition endpoint (always declared as PCM WAV)."""
    rate = sniff_sample_rate(payload.data) or DEFAULT_SAMPLE_RATE
    return f"audio/wav; codecs=audio/pcm; samplerate={rate}"

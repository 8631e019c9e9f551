"""16-bit PCM WAV encoding.

The encoder is bit-exact: a fixed 44-byte RIFF header followed by
interleaved little-endian int16 samples. Positive samples scale by 32767,
negative ones by 32768, and both round half up.
"""

from __future__ import annotations

import struct
from pathlib import Path

import numpy as np
from pydantic import BaseModel, ConfigDict

from .audio import AudioBuffer

HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8
PCM_FORMAT = 1

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


class WavHeader(BaseModel):
    chunk_size: int
    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def frames(self) -> int:
        if self.block_align == 0:
            return 0
        return self.data_size // self.block_align

    @property
    def duration(self) -> float:
        if self.sample_rate == 0:
            return 0.0
        return self.frames / self.sample_rate


def to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Quantize float samples to int16 with asymmetric scaling."""

    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clipped >= 0, clipped * 32767.0, clipped * 32768.0)
    return np.floor(scaled + 0.5).astype(np.int16)


def encode_header(channels: int, sample_rate: int, frames: int) -> bytes:
    block_align = channels * BYTES_PER_SAMPLE
    data_size = frames * block_align
    return _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def encode_wav(buffer: AudioBuffer) -> bytes:
    header = encode_header(buffer.channels, buffer.sample_rate, buffer.frames)
    # (channels, frames) -> frame-major interleaving
    interleaved = to_pcm16(buffer.samples).T.astype("<i2")
    return header + interleaved.tobytes()


def write_wav(path: str | Path, buffer: AudioBuffer) -> Path:
    target = Path(path)
    target.write_bytes(encode_wav(buffer))
    return target


def parse_wav_header(data: bytes) -> WavHeader:
    if len(data) < HEADER_SIZE:
        raise ValueError(f"WAV header needs {HEADER_SIZE} bytes, got {len(data)}")
    (
        riff,
        chunk_size,
        wave,
        fmt,
        _fmt_size,
        audio_format,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_tag,
        data_size,
    ) = _HEADER.unpack_from(data)
    if (riff, wave, fmt, data_tag) != (b"RIFF", b"WAVE", b"fmt ", b"data"):
        raise ValueError("not a canonical 44-byte PCM WAV header")
    return WavHeader(
        chunk_size=chunk_size,
        audio_format=audio_format,
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
    )

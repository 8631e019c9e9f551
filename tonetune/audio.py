from __future__ import annotations

import io
import logging
import math
from pathlib import Path
from typing import Any

import numpy as np
import soundfile as sf  # type: ignore[import]
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import DecodeError

_LOGGER = logging.getLogger("tonetune.audio")

FloatArray = NDArray[np.float32]

DEFAULT_SAMPLE_RATE = 44_100


def ensure_audio_contract(samples: Any) -> FloatArray:
    """Normalize dtype/shape to the buffer contract: read-only float32 (channels, frames).

    Non-finite samples become silence so they never reach the DSP math.
    """

    array = np.asarray(samples, dtype=np.float32)
    if array.ndim == 1:
        array = array.reshape(1, -1)
    if array.ndim != 2:
        raise ValueError(f"audio samples must be 1-D or 2-D, got {array.ndim}-D")
    if array.shape[0] == 0:
        raise ValueError("audio samples must have at least one channel")
    normalized = np.nan_to_num(array, nan=0.0, posinf=0.0, neginf=0.0).astype(np.float32, copy=True)
    normalized.setflags(write=False)
    return normalized


class AudioBuffer(BaseModel):
    """Immutable PCM buffer shaped (channels, frames)."""

    samples: FloatArray
    sample_rate: int = Field(gt=0)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    @field_validator("samples", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> FloatArray:
        return ensure_audio_contract(value)

    @classmethod
    def from_frames(cls, frames: Any, sample_rate: int) -> "AudioBuffer":
        """Build from a (frames, channels) array, the layout soundfile and sounddevice use."""

        array = np.asarray(frames, dtype=np.float32)
        if array.ndim == 2:
            array = array.T
        return cls(samples=array, sample_rate=sample_rate)

    @classmethod
    def silence(cls, duration: float, *, sample_rate: int = DEFAULT_SAMPLE_RATE, channels: int = 1) -> "AudioBuffer":
        frames = int(round(duration * sample_rate))
        return cls(samples=np.zeros((channels, frames), dtype=np.float32), sample_rate=sample_rate)

    @property
    def channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frames(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate

    def to_frames(self) -> FloatArray:
        return np.ascontiguousarray(self.samples.T)

    def sample_index(self, time: float) -> int:
        index = math.floor(time * self.sample_rate)
        return min(max(index, 0), self.frames)

    def crop(self, start_time: float, end_time: float) -> "AudioBuffer":
        """Slice [start_time, end_time) by sample index."""

        if not (math.isfinite(start_time) and math.isfinite(end_time)):
            raise ValueError("crop bounds must be finite")
        start = self.sample_index(start_time)
        end = self.sample_index(end_time)
        if end <= start:
            raise ValueError(f"empty crop [{start_time}, {end_time}) for {self.duration:.3f}s buffer")
        return AudioBuffer(samples=self.samples[:, start:end], sample_rate=self.sample_rate)


def decode(data: bytes) -> AudioBuffer:
    """Decode container bytes (WAV, FLAC, OGG, ...) into an AudioBuffer."""

    if not data:
        raise DecodeError("source is empty")
    try:
        frames, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (RuntimeError, TypeError, ValueError) as exc:
        _LOGGER.info("Decoding %d bytes failed: %s", len(data), exc)
        raise DecodeError(f"unsupported or corrupt audio: {exc}") from exc
    if frames.shape[0] == 0:
        raise DecodeError("source has no audio frames")
    return AudioBuffer.from_frames(frames, int(sample_rate))


def load_file(path: str | Path) -> AudioBuffer:
    target = Path(path)
    try:
        data = target.read_bytes()
    except OSError as exc:
        raise DecodeError(f"cannot read {target}: {exc}") from exc
    return decode(data)

from __future__ import annotations

import inspect
import logging
import math
from pathlib import Path
from typing import Awaitable, Callable, Union

from .errors import UploadError
from .params import ProcessingParams
from .segments import Segment

_LOGGER = logging.getLogger("tonetune.upload")

UploadTarget = Union[str, Path]
Uploader = Callable[[bytes, str], Union[UploadTarget, Awaitable[UploadTarget]]]

UNCROPPED_FILENAME = "processed_audio.wav"


def format_time(seconds: float) -> str:
    """MM:SS with whole seconds truncated."""
    if not math.isfinite(seconds) or seconds < 0:
        return "00:00"
    minutes = math.floor(seconds / 60)
    secs = math.floor(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"


def format_time_precise(seconds: float) -> str:
    if not math.isfinite(seconds) or seconds < 0:
        return "00:00.000"
    whole = math.floor(seconds)
    millis = min(int(math.floor((seconds - whole) * 1000 + 0.5)), 999)
    return f"{whole // 60:02d}:{whole % 60:02d}.{millis:03d}"


def quality_label(params: ProcessingParams) -> str:
    suffix = "bit" if params.output_format == "WAV" else "kbps"
    return f"{params.bit_rate}{suffix}"


def build_filename(segment: Segment | None, params: ProcessingParams) -> str:
    """Download name for a render; the container is always WAV."""

    if segment is None:
        return UNCROPPED_FILENAME
    span = f"{format_time(segment.start_time)}-{format_time(segment.end_time)}"
    return f"cropped_audio_{span}_{quality_label(params)}.wav"


async def submit(data: bytes, filename: str, uploader: Uploader) -> UploadTarget:
    """Hand a rendered file to the upload collaborator exactly once."""

    try:
        outcome = uploader(data, filename)
        if inspect.isawaitable(outcome):
            outcome = await outcome
    except UploadError:
        raise
    except Exception as exc:
        _LOGGER.warning("Upload of %s failed: %s", filename, exc)
        raise UploadError(f"upload of {filename} failed: {exc}") from exc
    _LOGGER.info("Uploaded %s (%d bytes)", filename, len(data))
    return outcome


class DirectoryUploader:
    """Stores uploads as files in a local directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def __call__(self, data: bytes, filename: str) -> Path:
        name = Path(filename).name
        if not name:
            raise UploadError("upload filename is empty")
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / name
        target.write_bytes(data)
        return target

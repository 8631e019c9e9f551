from __future__ import annotations

from pathlib import Path

import pytest

from tonetune.errors import UploadError
from tonetune.params import ProcessingParams
from tonetune.segments import Segment
from tonetune.upload import (
    DirectoryUploader,
    build_filename,
    format_time,
    format_time_precise,
    submit,
)


def test_format_time() -> None:
    assert format_time(0) == "00:00"
    assert format_time(65.9) == "01:05"
    assert format_time(-3) == "00:00"
    assert format_time_precise(61.25) == "01:01.250"
    assert format_time_precise(float("nan")) == "00:00.000"


def test_filename_for_segment_uses_quality_suffix() -> None:
    segment = Segment(start_time=1.2, end_time=5.7)
    opus = ProcessingParams(output_format="OPUS", bit_rate="160")
    wav = ProcessingParams(output_format="WAV", bit_rate="24")
    assert build_filename(segment, opus) == "cropped_audio_00:01-00:05_160kbps.wav"
    assert build_filename(segment, wav) == "cropped_audio_00:01-00:05_24bit.wav"


def test_filename_without_segment() -> None:
    assert build_filename(None, ProcessingParams()) == "processed_audio.wav"


@pytest.mark.asyncio
async def test_submit_with_directory_uploader(tmp_path: Path) -> None:
    target = await submit(b"RIFF", "take.wav", DirectoryUploader(tmp_path / "uploads"))
    assert Path(target).read_bytes() == b"RIFF"


@pytest.mark.asyncio
async def test_submit_accepts_async_uploaders() -> None:
    received: list[tuple[bytes, str]] = []

    async def _upload(data: bytes, filename: str) -> str:
        received.append((data, filename))
        return f"memory://{filename}"

    assert await submit(b"x", "a.wav", _upload) == "memory://a.wav"
    assert received == [(b"x", "a.wav")]


@pytest.mark.asyncio
async def test_submit_wraps_failures_without_retrying() -> None:
    attempts: list[str] = []

    def _broken(_data: bytes, filename: str) -> str:
        attempts.append(filename)
        raise ConnectionError("offline")

    with pytest.raises(UploadError, match="offline") as excinfo:
        await submit(b"x", "a.wav", _broken)
    assert excinfo.value.code == "upload_failed"
    assert attempts == ["a.wav"]


def test_directory_uploader_strips_directories(tmp_path: Path) -> None:
    target = DirectoryUploader(tmp_path)(b"data", "../escape.wav")
    assert target == tmp_path / "escape.wav"

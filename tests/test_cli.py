from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import numpy as np
import pytest

from tonetune.audio import AudioBuffer
from tonetune.cli import build_parser, main
from tonetune.wav import encode_wav, parse_wav_header

SR = 8_000


@pytest.fixture
def source_wav(tmp_path: Path) -> Path:
    rng = np.random.default_rng(2)
    buffer = AudioBuffer(samples=rng.uniform(-0.3, 0.3, size=(2, SR)), sample_rate=SR)
    path = tmp_path / "input.wav"
    path.write_bytes(encode_wav(buffer))
    return path


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    log_dir = tmp_path / "logs"
    monkeypatch.setenv("TONETUNE_LOG_DIR", str(log_dir))
    return log_dir


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_render_writes_wav(source_wav: Path, tmp_path: Path) -> None:
    output = tmp_path / "out.wav"
    code = main(
        [
            "render",
            str(source_wav),
            str(output),
            "--preset",
            "standard",
            "--set",
            "volumeGain=70",
            "--start",
            "0",
            "--end",
            "0.5",
            "--seed",
            "3",
        ]
    )
    assert code == 0
    header = parse_wav_header(output.read_bytes())
    assert header.channels == 2
    assert header.sample_rate == SR
    assert header.frames == SR // 2


def test_render_can_upload_under_download_name(source_wav: Path, tmp_path: Path) -> None:
    uploads = tmp_path / "uploads"
    code = main(
        [
            "render",
            str(source_wav),
            str(tmp_path / "out.wav"),
            "--start",
            "0",
            "--end",
            "0.75",
            "--upload-dir",
            str(uploads),
        ]
    )
    assert code == 0
    assert (uploads / "cropped_audio_00:00-00:00_160kbps.wav").exists()


def test_bad_assignment_reports_error(source_wav: Path, tmp_path: Path, _isolated_logs: Path) -> None:
    code = main(["render", str(source_wav), str(tmp_path / "out.wav"), "--set", "volumeGain"])
    assert code == 1
    assert (_isolated_logs / "tonetune.log").exists()


def test_missing_input_reports_error(tmp_path: Path) -> None:
    assert main(["render", str(tmp_path / "nope.wav"), str(tmp_path / "out.wav")]) == 1


def test_info_prints_header(source_wav: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["info", str(source_wav)]) == 0
    out = capsys.readouterr().out
    assert "Channels: 2" in out
    assert "Sample rate: 8000 Hz" in out


def test_presets_table() -> None:
    assert main(["presets"]) == 0


def test_doctor_without_device(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setitem(sys.modules, "sounddevice", None)
    assert main(["doctor"]) == 0
    assert "44.1kHz" in capsys.readouterr().out


def test_render_reports_progress_stages(
    source_wav: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    messages: list[str] = []

    class RecordingSpinner:
        def __init__(self, message: str) -> None:
            messages.append(message)

        def update(self, message: str) -> None:
            messages.append(message)

    @contextmanager
    def recording_spinner(message: str) -> Iterator[RecordingSpinner]:
        yield RecordingSpinner(message)

    monkeypatch.setattr("tonetune.cli.spinner", recording_spinner)
    assert main(["render", str(source_wav), str(tmp_path / "staged.wav")]) == 0
    assert messages == ["Rendering input.wav", "Encoding staged.wav"]

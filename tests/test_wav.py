from __future__ import annotations

import struct
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf  # type: ignore[import]

from tonetune.audio import AudioBuffer, decode
from tonetune.wav import HEADER_SIZE, encode_wav, parse_wav_header, to_pcm16, write_wav


def test_one_second_of_mono_silence() -> None:
    data = encode_wav(AudioBuffer.silence(1.0, sample_rate=44_100))
    assert len(data) == HEADER_SIZE + 88_200
    assert data[:4] == b"RIFF"
    assert data[8:16] == b"WAVEfmt "
    assert data[36:40] == b"data"
    assert not any(data[HEADER_SIZE:])
    header = parse_wav_header(data)
    assert header.chunk_size == 36 + 88_200
    assert header.byte_rate == 88_200
    assert header.block_align == 2
    assert header.bits_per_sample == 16
    assert header.audio_format == 1
    assert header.data_size == 88_200
    assert header.duration == pytest.approx(1.0)


def test_quantization_is_asymmetric_and_rounds_half_up() -> None:
    samples = np.array([1.0, -1.0, 0.5, -0.5, 2.0, -3.0, 0.0])
    assert to_pcm16(samples).tolist() == [32767, -32768, 16384, -16384, 32767, -32768, 0]


def test_stereo_samples_are_interleaved() -> None:
    buffer = AudioBuffer(samples=np.array([[1.0, 0.0], [-1.0, 0.5]]), sample_rate=8_000)
    data = encode_wav(buffer)
    header = parse_wav_header(data)
    assert header.channels == 2
    assert header.block_align == 4
    assert header.byte_rate == 32_000
    assert struct.unpack("<4h", data[HEADER_SIZE:]) == (32767, -32768, 0, 16384)


def test_encoded_wav_decodes_back() -> None:
    rng = np.random.default_rng(4)
    buffer = AudioBuffer(samples=rng.uniform(-0.8, 0.8, size=(2, 400)), sample_rate=22_050)
    decoded = decode(encode_wav(buffer))
    assert decoded.sample_rate == 22_050
    assert decoded.channels == 2
    assert np.allclose(decoded.samples, buffer.samples, atol=1 / 16_000)


def test_write_wav_is_readable_by_soundfile(tmp_path: Path) -> None:
    target = write_wav(tmp_path / "out.wav", AudioBuffer.silence(0.1, sample_rate=16_000, channels=2))
    info = sf.info(str(target))
    assert info.samplerate == 16_000
    assert info.channels == 2
    assert info.frames == 1_600
    assert info.subtype == "PCM_16"


def test_parse_rejects_short_or_foreign_data() -> None:
    with pytest.raises(ValueError):
        parse_wav_header(b"RIFF")
    with pytest.raises(ValueError):
        parse_wav_header(b"X" * HEADER_SIZE)

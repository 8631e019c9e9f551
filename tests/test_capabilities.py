from __future__ import annotations

import sys

import pytest

from tonetune.capabilities import (
    DeviceCapabilities,
    advise,
    format_sample_rate,
    probe_capabilities,
)
from tonetune.params import ProcessingParams


def test_format_sample_rate() -> None:
    assert format_sample_rate(44_100) == "44.1kHz"
    assert format_sample_rate(48_000) == "48.0kHz"
    assert format_sample_rate(800) == "800Hz"
    assert format_sample_rate(None) == "unknown"


def test_capabilities_without_sounddevice_are_conservative(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "sounddevice", None)
    capabilities = probe_capabilities()
    assert capabilities.max_sample_rate == 44_100
    assert capabilities.supported_formats == ("WAV",)


def test_advise_warns_but_never_clamps() -> None:
    params = ProcessingParams(sample_rate="96kHz", output_format="OPUS")
    warnings = advise(params, DeviceCapabilities(max_sample_rate=48_000))
    assert len(warnings) == 2
    assert "96kHz" in warnings[0]
    assert params.sample_rate == "96kHz"


def test_advise_is_quiet_when_supported() -> None:
    params = ProcessingParams(sample_rate="44.1kHz", output_format="WAV")
    assert advise(params, DeviceCapabilities(max_sample_rate=48_000)) == []

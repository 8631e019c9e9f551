from __future__ import annotations

import numpy as np
import pytest

from tonetune.chain import (
    build_chain,
    build_context,
    compressor_ratio,
    denoise_cutoff,
    high_smooth_shelf,
    low_clear_band,
    output_gain,
    voice_clarity_band,
    width_factor,
)
from tonetune.errors import RenderError
from tonetune.params import ProcessingParams

_BASIC = ["denoise", "low_eq", "mid_eq", "high_eq", "clarity", "compressor", "gain"]


def _names(params: ProcessingParams, profile: str = "professional") -> list[str]:
    return [stage.name for stage in build_chain(params, 8_000, profile=profile)]  # type: ignore[arg-type]


def test_basic_profile_order() -> None:
    assert _names(ProcessingParams(), "basic") == _BASIC


def test_professional_profile_inserts_tone_stages() -> None:
    assert _names(ProcessingParams()) == [
        "denoise",
        "low_eq",
        "mid_eq",
        "high_eq",
        "clarity",
        "low_clear",
        "voice_clarity",
        "high_smooth",
        "compressor",
        "gain",
    ]


def test_width_and_reverb_stages_are_optional() -> None:
    names = _names(ProcessingParams(stereo_width=30, reverb=20), "basic")
    assert names == [*_BASIC, "stereo_width", "reverb"]


def test_stage_mappings() -> None:
    assert denoise_cutoff(0) == 8000
    assert denoise_cutoff(50) == 4500
    assert denoise_cutoff(100) == 1000
    assert compressor_ratio(0) == 1
    assert compressor_ratio(25) == pytest.approx(4)
    assert output_gain(50) == 1
    assert output_gain(100) == 2
    assert width_factor(25) == 0.5


def test_tone_stages_are_neutral_at_fifty() -> None:
    assert low_clear_band(50) == (150.0, 1.0, 0.0)
    assert voice_clarity_band(50) == (3000.0, 1.5, 0.0)
    assert high_smooth_shelf(50) == (12000.0, 0.0)


def test_gain_stage_scales_every_channel() -> None:
    stages = {stage.name: stage for stage in build_chain(ProcessingParams(volume_gain=100, stereo_width=25), 8_000)}
    samples = np.full((2, 4), 0.25)
    assert np.allclose(stages["gain"](samples), 0.5)
    assert np.allclose(stages["stereo_width"](samples), 0.125)


def test_context_runs_stages_in_order() -> None:
    context = build_context(ProcessingParams(), 8_000, profile="basic")
    silence = np.zeros((1, 256))
    assert np.array_equal(context.run(silence), silence)


def test_invalid_sample_rate_is_rejected() -> None:
    with pytest.raises(RenderError):
        build_chain(ProcessingParams(), 0)

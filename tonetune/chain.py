from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from typing import Literal

import numpy as np

from .dsp import (
    SampleArray,
    apply_biquad,
    compress,
    convolve_mix,
    highshelf_coefficients,
    lowpass_coefficients,
    peaking_coefficients,
)
from .errors import RenderError
from .params import ProcessingParams
from .reverb import synthesize_impulse

_LOGGER = logging.getLogger("tonetune.chain")

Profile = Literal["basic", "professional"]

EQ_LOW_HZ = 150.0
EQ_MID_HZ = 1000.0
EQ_HIGH_HZ = 8000.0
EQ_Q = 1.0
CLARITY_SHELF_HZ = 6000.0

COMPRESSOR_THRESHOLD_DB = -24.0
COMPRESSOR_KNEE_DB = 30.0
COMPRESSOR_ATTACK = 0.003
COMPRESSOR_RELEASE = 0.25

NEUTRAL_WIDTH = 50.0


@dataclass(frozen=True, slots=True)
class Stage:
    """One pure processing step over a (channels, frames) array."""

    name: str
    process: Callable[[SampleArray], SampleArray]

    def __call__(self, samples: SampleArray) -> SampleArray:
        return self.process(samples)


@dataclass(slots=True)
class RenderContext:
    """Everything one render owns; built fresh per call and dropped afterwards."""

    params: ProcessingParams
    sample_rate: int
    profile: Profile = "professional"
    rng: np.random.Generator | None = None
    stages: list[Stage] = field(default_factory=list)

    def run(self, samples: SampleArray) -> SampleArray:
        output = samples
        for stage in self.stages:
            output = stage(output)
            if output.shape != samples.shape:
                raise RenderError(
                    f"stage {stage.name!r} changed shape {samples.shape} -> {output.shape}"
                )
        return output


def denoise_cutoff(noise_reduction: float) -> float:
    return max(1000.0, 8000.0 - noise_reduction * 70.0)


def clarity_gain_db(clarity: float) -> float:
    return clarity * 0.2


def compressor_ratio(bass_boost: float) -> float:
    return 1.0 + (bass_boost / 100.0) * 12.0


def output_gain(volume_gain: float) -> float:
    """50 is unity, 100 doubles, 0 silences."""
    return volume_gain / 50.0


def width_factor(stereo_width: float) -> float:
    return stereo_width / 50.0


def low_clear_band(value: float) -> tuple[float, float, float]:
    """(freq, q, gain_db) of the low-end clarity peak; 50 is neutral."""
    offset = value - 50.0
    return 150.0 + offset * 3.0, 1.0 + offset * 0.02, offset * 0.1


def voice_clarity_band(value: float) -> tuple[float, float, float]:
    """(freq, q, gain_db) of the vocal presence peak; 50 is neutral."""
    offset = value - 50.0
    return 3000.0 + offset * 20.0, 1.5 + offset * 0.01, offset * 0.12


def high_smooth_shelf(value: float) -> tuple[float, float]:
    """(freq, gain_db) of the top-end smoothing shelf; 50 is neutral."""
    return 10000.0 + (100.0 - value) * 40.0, (50.0 - value) * 0.1


def _biquad_stage(name: str, coefficients: tuple[np.ndarray, np.ndarray]) -> Stage:
    return Stage(name, partial(apply_biquad, coefficients=coefficients))


def _scale(samples: SampleArray, factor: float) -> SampleArray:
    return samples * factor


def _filter_stages(params: ProcessingParams, sample_rate: int, profile: Profile) -> list[Stage]:
    stages = [
        _biquad_stage("denoise", lowpass_coefficients(denoise_cutoff(params.noise_reduction), sample_rate)),
        _biquad_stage("low_eq", peaking_coefficients(EQ_LOW_HZ, EQ_Q, params.low_freq, sample_rate)),
        _biquad_stage("mid_eq", peaking_coefficients(EQ_MID_HZ, EQ_Q, params.mid_freq, sample_rate)),
        _biquad_stage("high_eq", peaking_coefficients(EQ_HIGH_HZ, EQ_Q, params.high_freq, sample_rate)),
        _biquad_stage(
            "clarity",
            highshelf_coefficients(CLARITY_SHELF_HZ, clarity_gain_db(params.clarity), sample_rate),
        ),
    ]
    if profile == "professional":
        low_freq, low_q, low_gain = low_clear_band(params.low_freq_clear)
        voice_freq, voice_q, voice_gain = voice_clarity_band(params.voice_mid_freq)
        smooth_freq, smooth_gain = high_smooth_shelf(params.high_freq_smooth)
        stages += [
            _biquad_stage("low_clear", peaking_coefficients(low_freq, low_q, low_gain, sample_rate)),
            _biquad_stage(
                "voice_clarity", peaking_coefficients(voice_freq, voice_q, voice_gain, sample_rate)
            ),
            _biquad_stage("high_smooth", highshelf_coefficients(smooth_freq, smooth_gain, sample_rate)),
        ]
    return stages


def build_chain(
    params: ProcessingParams,
    sample_rate: int,
    *,
    profile: Profile = "professional",
    rng: np.random.Generator | None = None,
) -> list[Stage]:
    """Ordered stages: filters, compressor, gain, stereo width, reverb.

    The order is fixed because compression reacts to the equalized signal.
    """

    if sample_rate <= 0:
        raise RenderError(f"invalid sample rate: {sample_rate}")

    stages = _filter_stages(params, sample_rate, profile)
    stages.append(
        Stage(
            "compressor",
            partial(
                compress,
                sample_rate=sample_rate,
                threshold_db=COMPRESSOR_THRESHOLD_DB,
                knee_db=COMPRESSOR_KNEE_DB,
                ratio=compressor_ratio(params.bass_boost),
                attack=COMPRESSOR_ATTACK,
                release=COMPRESSOR_RELEASE,
            ),
        )
    )
    stages.append(Stage("gain", partial(_scale, factor=output_gain(params.volume_gain))))

    if params.stereo_width != NEUTRAL_WIDTH:
        stages.append(Stage("stereo_width", partial(_scale, factor=width_factor(params.stereo_width))))

    if params.reverb > 0:
        impulse = synthesize_impulse(sample_rate, params.reverb, params.decay_time, rng)
        stages.append(Stage("reverb", partial(convolve_mix, impulse=impulse, wet=params.reverb / 100.0)))

    _LOGGER.debug("Built %s chain: %s", profile, ", ".join(stage.name for stage in stages))
    return stages


def build_context(
    params: ProcessingParams,
    sample_rate: int,
    *,
    profile: Profile = "professional",
    rng: np.random.Generator | None = None,
) -> RenderContext:
    context = RenderContext(params=params, sample_rate=sample_rate, profile=profile, rng=rng)
    context.stages = build_chain(params, sample_rate, profile=profile, rng=rng)
    return context

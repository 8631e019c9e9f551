# pyright: reportUnknownVariableType=false
# pyright: reportUnknownMemberType=false
# pyright: reportUnknownArgumentType=false

"""
DSP primitives shared by the signal chain.

1. Biquad design: Audio-EQ-Cookbook low-pass, peaking and high-shelf sections
   in the parameterization browsers use for their biquad nodes.
2. Dynamics: soft-knee feed-forward compressor with a linked detector.
3. Convolution: dry/wet convolution reverb truncated to the input length.

All processors take float64 arrays shaped (channels, frames) and return a new
array of the same shape.
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import TypeAlias

import numpy as np
from numba import njit  # type: ignore[import]
from numpy.typing import NDArray
from scipy.signal import fftconvolve, lfilter  # type: ignore[import]

SampleArray: TypeAlias = NDArray[np.float64]
Coefficients: TypeAlias = tuple[NDArray[np.float64], NDArray[np.float64]]

# Browsers default the low-pass resonance to 1 dB.
DEFAULT_LOWPASS_RESONANCE_DB = 1.0
_MIN_LEVEL = 1e-9


def _identity() -> Coefficients:
    return np.array([1.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0])


def _normalize(
    b0: float, b1: float, b2: float, a0: float, a1: float, a2: float
) -> Coefficients:
    return (
        np.array([b0 / a0, b1 / a0, b2 / a0], dtype=np.float64),
        np.array([1.0, a1 / a0, a2 / a0], dtype=np.float64),
    )


def _above_nyquist(freq: float, sample_rate: int) -> bool:
    return freq >= sample_rate / 2


@lru_cache(maxsize=512)
def lowpass_coefficients(
    freq: float,
    sample_rate: int,
    resonance_db: float = DEFAULT_LOWPASS_RESONANCE_DB,
) -> Coefficients:
    """Second-order low-pass; a cutoff at or above Nyquist passes everything."""
    if _above_nyquist(freq, sample_rate) or freq <= 0:
        return _identity()
    w0 = 2.0 * math.pi * freq / sample_rate
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / (2.0 * 10.0 ** (resonance_db / 20.0))
    return _normalize(
        (1.0 - cos_w0) / 2.0,
        1.0 - cos_w0,
        (1.0 - cos_w0) / 2.0,
        1.0 + alpha,
        -2.0 * cos_w0,
        1.0 - alpha,
    )


@lru_cache(maxsize=512)
def peaking_coefficients(freq: float, q: float, gain_db: float, sample_rate: int) -> Coefficients:
    """Peaking EQ; a non-positive Q degenerates to a broadband gain of A**2."""
    amp = 10.0 ** (gain_db / 40.0)
    if _above_nyquist(freq, sample_rate) or freq <= 0:
        return _identity()
    if q <= 0:
        return np.array([amp * amp, 0.0, 0.0]), np.array([1.0, 0.0, 0.0])
    w0 = 2.0 * math.pi * freq / sample_rate
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / (2.0 * q)
    return _normalize(
        1.0 + alpha * amp,
        -2.0 * cos_w0,
        1.0 - alpha * amp,
        1.0 + alpha / amp,
        -2.0 * cos_w0,
        1.0 - alpha / amp,
    )


@lru_cache(maxsize=512)
def highshelf_coefficients(freq: float, gain_db: float, sample_rate: int) -> Coefficients:
    """High shelf with slope 1 (boost/cut above ``freq``)."""
    if _above_nyquist(freq, sample_rate) or freq <= 0:
        return _identity()
    amp = 10.0 ** (gain_db / 40.0)
    w0 = 2.0 * math.pi * freq / sample_rate
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / 2.0 * math.sqrt(2.0)
    two_sqrt_a_alpha = 2.0 * math.sqrt(amp) * alpha
    return _normalize(
        amp * ((amp + 1) + (amp - 1) * cos_w0 + two_sqrt_a_alpha),
        -2.0 * amp * ((amp - 1) + (amp + 1) * cos_w0),
        amp * ((amp + 1) + (amp - 1) * cos_w0 - two_sqrt_a_alpha),
        (amp + 1) - (amp - 1) * cos_w0 + two_sqrt_a_alpha,
        2.0 * ((amp - 1) - (amp + 1) * cos_w0),
        (amp + 1) - (amp - 1) * cos_w0 - two_sqrt_a_alpha,
    )


def apply_biquad(samples: SampleArray, coefficients: Coefficients) -> SampleArray:
    b, a = coefficients
    if samples.shape[-1] == 0:
        return samples.copy()
    filtered = lfilter(b, a, samples, axis=-1)
    return np.asarray(filtered, dtype=np.float64)


def compressor_curve(
    level_db: NDArray[np.float64],
    *,
    threshold_db: float,
    knee_db: float,
    ratio: float,
) -> NDArray[np.float64]:
    """Static soft-knee transfer curve, input level to output level in dB."""

    overshoot = level_db - threshold_db
    slope = 1.0 / ratio - 1.0
    if knee_db > 0:
        knee_out = level_db + slope * (overshoot + knee_db / 2.0) ** 2 / (2.0 * knee_db)
    else:
        knee_out = level_db
    above = threshold_db + overshoot / ratio
    return np.where(
        2.0 * overshoot < -knee_db,
        level_db,
        np.where(2.0 * np.abs(overshoot) <= knee_db, knee_out, above),
    )


def _time_coefficient(seconds: float, sample_rate: int) -> float:
    if seconds <= 0:
        return 0.0
    return math.exp(-1.0 / (seconds * sample_rate))


@njit(cache=True)
def _smooth_gain(target_db, attack, release):
    """One-pole gain smoother; attack while reducing, release while recovering."""
    n = len(target_db)
    smoothed = np.empty(n, dtype=np.float64)
    gain = 0.0
    for i in range(n):
        target = target_db[i]
        coeff = attack if target < gain else release
        gain = coeff * gain + (1.0 - coeff) * target
        smoothed[i] = gain
    return smoothed


def compress(
    samples: SampleArray,
    sample_rate: int,
    *,
    threshold_db: float,
    knee_db: float,
    ratio: float,
    attack: float,
    release: float,
) -> SampleArray:
    """Feed-forward compressor; all channels share one gain envelope."""

    if ratio <= 1.0 or samples.shape[-1] == 0:
        return samples.copy()
    level = np.max(np.abs(samples), axis=0)
    level_db = 20.0 * np.log10(np.maximum(level, _MIN_LEVEL))
    curve_db = compressor_curve(level_db, threshold_db=threshold_db, knee_db=knee_db, ratio=ratio)
    target_db = np.minimum(curve_db - level_db, 0.0)
    gain_db = _smooth_gain(
        target_db,
        _time_coefficient(attack, sample_rate),
        _time_coefficient(release, sample_rate),
    )
    return samples * (10.0 ** (gain_db / 20.0))


def convolve_mix(samples: SampleArray, impulse: NDArray[np.float64], wet: float) -> SampleArray:
    """Dry/wet convolution; channel c uses impulse channel c % len(impulse)."""

    frames = samples.shape[-1]
    if frames == 0 or impulse.shape[-1] == 0 or wet <= 0:
        return samples.copy()
    dry = 1.0 - wet
    output = np.empty_like(samples)
    for channel in range(samples.shape[0]):
        response = impulse[channel % impulse.shape[0]]
        convolved = fftconvolve(samples[channel], response, mode="full")[:frames]
        output[channel] = samples[channel] * dry + convolved * wet
    return output

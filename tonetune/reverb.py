from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

IMPULSE_CHANNELS = 2


def impulse_length(sample_rate: int, decay: float) -> int:
    """Frames in the impulse: two seconds scaled by 0.5 + decay / 50."""
    return int(math.floor(sample_rate * 2 * (0.5 + decay / 50)))


def synthesize_impulse(
    sample_rate: int,
    reverb_amount: float,
    decay: float,
    rng: np.random.Generator | None = None,
) -> NDArray[np.float64]:
    """Exponentially decaying white-noise impulse response, shaped (2, length).

    sample[i] = uniform(-1, 1) * (1 - i / length) ** (1 + decay / 100) * (reverb_amount / 100)

    Without ``rng`` a fresh unseeded generator is used, so every call differs.
    """

    generator = rng if rng is not None else np.random.default_rng()
    length = impulse_length(sample_rate, decay)
    if length <= 0:
        return np.zeros((IMPULSE_CHANNELS, 0), dtype=np.float64)
    envelope = (1.0 - np.arange(length, dtype=np.float64) / length) ** (1.0 + decay / 100.0)
    noise = generator.uniform(-1.0, 1.0, size=(IMPULSE_CHANNELS, length))
    return noise * envelope * (reverb_amount / 100.0)

from __future__ import annotations

import logging

import numpy as np

from .audio import AudioBuffer
from .chain import Profile, build_context
from .errors import RenderError
from .params import ProcessingParams
from .segments import Segment

_LOGGER = logging.getLogger("tonetune.render")


def _select_range(source: AudioBuffer, segment: Segment | None) -> AudioBuffer:
    if segment is None:
        return source
    try:
        return source.crop(segment.start_time, segment.end_time)
    except ValueError as exc:
        raise RenderError(f"cannot crop segment: {exc}") from exc


def render(
    source: AudioBuffer,
    params: ProcessingParams,
    segment: Segment | None = None,
    *,
    profile: Profile = "professional",
    rng: np.random.Generator | None = None,
) -> AudioBuffer:
    """Run the signal chain over ``source`` (or the segment of it) offline.

    The returned buffer has the same channel and frame counts as the rendered
    range. Nothing outside the returned buffer is touched; any failure raises
    RenderError.
    """

    if params.output_format != "WAV":
        _LOGGER.info("Output format %s is rendered as WAV", params.output_format)

    selected = _select_range(source, segment)
    if selected.frames == 0:
        raise RenderError("source has no frames to render")

    try:
        context = build_context(params, selected.sample_rate, profile=profile, rng=rng)
        output = context.run(selected.samples.astype(np.float64))
    except RenderError:
        raise
    except Exception as exc:
        _LOGGER.warning("Signal chain failed: %s", exc)
        raise RenderError(f"signal chain failed: {exc}") from exc

    if not np.all(np.isfinite(output)):
        raise RenderError("signal chain produced non-finite samples")

    _LOGGER.debug(
        "Rendered %d frames x %d channels at %d Hz",
        selected.frames,
        selected.channels,
        selected.sample_rate,
    )
    return AudioBuffer(samples=output, sample_rate=selected.sample_rate)

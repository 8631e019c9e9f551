from __future__ import annotations

import logging
import math
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_LOGGER = logging.getLogger("tonetune.segments")

MIN_SPAN = 0.1
DEFAULT_SPAN = 2.0
DEFAULT_SEGMENT_ID = "default-segment"


class Segment(BaseModel):
    """A crop/playback range in seconds."""

    start_time: float
    end_time: float
    editable: bool = True
    label: Optional[str] = None
    id: Optional[str] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @property
    def length(self) -> float:
        return self.end_time - self.start_time


def default_segment(duration: float) -> Segment:
    return Segment(start_time=0.0, end_time=min(DEFAULT_SPAN, duration), id=DEFAULT_SEGMENT_ID)


def is_valid_segment(segment: Segment, duration: float) -> bool:
    start, end = segment.start_time, segment.end_time
    if not (math.isfinite(start) and math.isfinite(end) and math.isfinite(duration)):
        return False
    return 0.0 <= start < end <= duration


def constrain_segment(proposed: Segment, duration: float) -> Segment:
    """Clamp a proposed range into ``[0, duration]`` keeping at least a sliver of span.

    Never raises: NaN start becomes 0, NaN end becomes ``duration``, and an
    inverted or empty range is widened to ``MIN_SPAN`` (or to the end of the
    audio when less remains).
    """

    if not math.isfinite(duration) or duration <= 0:
        return proposed.model_copy(update={"start_time": 0.0, "end_time": 0.0})

    start = 0.0 if math.isnan(proposed.start_time) else proposed.start_time
    end = duration if math.isnan(proposed.end_time) else proposed.end_time

    start = min(max(start, 0.0), max(duration - MIN_SPAN, 0.0))
    end = min(end, duration)
    if end <= start:
        end = min(start + MIN_SPAN, duration)

    return proposed.model_copy(update={"start_time": start, "end_time": end})


class SegmentManager:
    """Selection state for one loaded source.

    Dragging produces clamped previews; only ``end_drag`` and ``select``
    persist a segment, and only when it is valid for the current duration.
    """

    def __init__(self, duration: float = 0.0) -> None:
        self._duration = 0.0
        self._segment: Segment | None = None
        self._preview: Segment | None = None
        if duration > 0:
            self.load(duration)

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def segment(self) -> Segment | None:
        return self._segment

    @property
    def preview(self) -> Segment | None:
        return self._preview

    def load(self, duration: float) -> Segment | None:
        self.clear()
        self._duration = duration if math.isfinite(duration) and duration > 0 else 0.0
        if self._duration > 0:
            self._segment = default_segment(self._duration)
        return self._segment

    def clear(self) -> None:
        self._segment = None
        self._preview = None

    def validate(self, segment: Segment) -> bool:
        return is_valid_segment(segment, self._duration)

    def constrain_drag(self, proposed: Segment, duration: float | None = None) -> Segment:
        return constrain_segment(proposed, self._duration if duration is None else duration)

    def drag(self, proposed: Segment) -> Segment:
        self._preview = self.constrain_drag(proposed)
        return self._preview

    def end_drag(self, proposed: Segment) -> Segment | None:
        self._preview = None
        constrained = self.constrain_drag(proposed)
        if not self.validate(constrained):
            _LOGGER.debug("Dropping drag result %s for %.3fs source", constrained, self._duration)
            return self._segment
        self._segment = constrained
        return self._segment

    def select(self, segment: Segment) -> bool:
        if not self.validate(segment):
            _LOGGER.debug("Ignoring invalid selection %s", segment)
            return False
        self._segment = segment
        return True

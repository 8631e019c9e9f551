from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from typing import Any, Callable, Protocol

from pydantic import BaseModel, ConfigDict

from .audio import AudioBuffer
from .errors import PlaybackError
from .segments import Segment, is_valid_segment

_LOGGER = logging.getLogger("tonetune.playback")

DEFAULT_POLL_INTERVAL = 0.005
DEFAULT_FALLBACK_MARGIN = 0.05
# Polling stops this far ahead of the segment end.
STOP_MARGIN = 0.01


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"


class PlaybackTransport(Protocol):
    @property
    def duration(self) -> float: ...

    @property
    def current_time(self) -> float: ...

    def seek(self, time: float) -> None: ...

    async def start(self) -> None: ...

    def pause(self) -> None: ...


class PlaybackHooks(BaseModel):
    on_state_change: Callable[[PlaybackState], None] | None = None
    on_error: Callable[[PlaybackError], None] | None = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )


class PlaybackScheduler:
    """Plays a transport, optionally bounded to a segment.

    Segment playback is stopped by whichever fires first: a polling task that
    watches ``current_time`` or a wall-clock fallback timer sized to the
    segment. Any transition to IDLE cancels both.
    """

    def __init__(
        self,
        transport: PlaybackTransport,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        fallback_margin: float = DEFAULT_FALLBACK_MARGIN,
        hooks: PlaybackHooks | None = None,
    ) -> None:
        self._transport = transport
        self._poll_interval = poll_interval
        self._fallback_margin = fallback_margin
        self._hooks = hooks or PlaybackHooks()
        self._state = PlaybackState.IDLE
        self._segment: Segment | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._fallback: asyncio.TimerHandle | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self.last_stop_reason: str | None = None

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING

    @property
    def segment(self) -> Segment | None:
        return self._segment

    def fallback_delay(self, segment: Segment) -> float:
        return (segment.end_time - segment.start_time) + self._fallback_margin

    async def play_segment(self, segment: Segment) -> None:
        if self.is_playing:
            self.stop()
            return
        if not is_valid_segment(segment, self._transport.duration):
            _LOGGER.debug("Not playing invalid segment %s", segment)
            return

        self._transport.seek(segment.start_time)
        await self._start()
        self._segment = segment

        loop = asyncio.get_running_loop()
        self._poll_task = loop.create_task(self._poll(segment.end_time - STOP_MARGIN))
        self._fallback = loop.call_later(self.fallback_delay(segment), self._on_fallback)

    async def play(self) -> None:
        if self.is_playing:
            self.stop()
            return
        await self._start()

    def stop(self) -> None:
        self._finish("stop", pause=True)

    def notify_ended(self) -> None:
        """Natural end of media reported by the transport."""
        self._finish("ended", pause=False)

    async def wait_idle(self) -> None:
        await self._idle.wait()

    async def _start(self) -> None:
        try:
            await self._transport.start()
        except Exception as exc:
            error = exc if isinstance(exc, PlaybackError) else PlaybackError(f"cannot start playback: {exc}")
            _LOGGER.warning("Playback failed to start: %s", error)
            self._set_state(PlaybackState.IDLE)
            if self._hooks.on_error is not None:
                self._hooks.on_error(error)
            if error is exc:
                raise
            raise error from exc
        self.last_stop_reason = None
        self._idle.clear()
        self._set_state(PlaybackState.PLAYING)

    async def _poll(self, stop_at: float) -> None:
        while self.is_playing:
            if self._transport.current_time >= stop_at:
                self._finish("poll", pause=True)
                return
            await asyncio.sleep(self._poll_interval)

    def _on_fallback(self) -> None:
        self._fallback = None
        self._finish("fallback", pause=True)

    def _finish(self, reason: str, *, pause: bool) -> None:
        if not self.is_playing:
            return
        if self._fallback is not None:
            self._fallback.cancel()
            self._fallback = None
        poll_task = self._poll_task
        self._poll_task = None
        if poll_task is not None and poll_task is not asyncio.current_task():
            poll_task.cancel()
        if pause:
            self._transport.pause()
        self._segment = None
        self.last_stop_reason = reason
        _LOGGER.debug("Playback stopped (%s)", reason)
        self._set_state(PlaybackState.IDLE)
        self._idle.set()

    def _set_state(self, state: PlaybackState) -> None:
        if state is self._state:
            return
        self._state = state
        if self._hooks.on_state_change is not None:
            self._hooks.on_state_change(state)


def _load_sounddevice() -> Any:
    try:
        import sounddevice as sd_module  # type: ignore[import]
    except (ImportError, OSError) as exc:
        _LOGGER.info("sounddevice not available: %s", exc, exc_info=True)
        raise PlaybackError(
            "Playback requires sounddevice. Install it with `pip install tonetune[playback]`."
        ) from exc
    return sd_module


class SoundDeviceTransport:
    """Streams an AudioBuffer to the default output device."""

    def __init__(
        self,
        buffer: AudioBuffer,
        *,
        on_finished: Callable[[], None] | None = None,
    ) -> None:
        self._buffer = buffer
        self._frames = buffer.to_frames()
        self._position = 0
        self._lock = threading.Lock()
        self._stream: Any = None
        self._on_finished = on_finished

    @property
    def duration(self) -> float:
        return self._buffer.duration

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._position / self._buffer.sample_rate

    def seek(self, time: float) -> None:
        with self._lock:
            self._position = self._buffer.sample_index(time)

    async def start(self) -> None:
        sd = _load_sounddevice()
        loop = asyncio.get_running_loop()
        # A stream that ran to its end is inactive but still open.
        self.pause()

        def _callback(outdata: Any, frames: int, _time: Any, status: Any) -> None:
            if status:
                _LOGGER.debug("Output stream status: %s", status)
            with self._lock:
                chunk = self._frames[self._position : self._position + frames]
                self._position += len(chunk)
            outdata[: len(chunk)] = chunk
            if len(chunk) < frames:
                outdata[len(chunk) :] = 0
                raise sd.CallbackStop

        def _finished() -> None:
            if self._on_finished is not None:
                loop.call_soon_threadsafe(self._on_finished)

        try:
            stream = sd.OutputStream(
                samplerate=self._buffer.sample_rate,
                channels=self._buffer.channels,
                dtype="float32",
                callback=_callback,
                finished_callback=_finished,
            )
            stream.start()
        except Exception as exc:
            raise PlaybackError(f"output device unavailable: {exc}") from exc
        self._stream = stream

    def pause(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        stream.stop()
        stream.close()

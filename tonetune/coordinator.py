"""
Debounced, serialized re-rendering.

1. Mutations (params, presets, source) bump a generation counter and arm a
   debounce task; a burst of mutations collapses into one render of the
   latest state.
2. Renders execute on a single-worker thread pool, so at most one runs at a
   time. Requests arriving meanwhile wait in a depth-1 slot where the newest
   request replaces the older one.
3. A finished render is published only if its generation is still current;
   publishing releases the previous result's handle first.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict

from .audio import AudioBuffer, decode
from .config import EngineConfig
from .errors import DecodeError, RenderError, ToneTuneError
from .handles import HandleRegistry
from .logging_utils import debug_enabled
from .params import OutputFormat, ProcessingParams, UpdateInput, coerce_update, is_empty_update
from .presets import PresetInput
from .render import render
from .segments import Segment, SegmentManager
from .store import ParameterStore
from .upload import build_filename
from .wav import encode_wav

_LOGGER = logging.getLogger("tonetune.coordinator")

Decoder = Callable[[bytes], AudioBuffer]


class RenderJob(BaseModel):
    generation: int
    params: ProcessingParams
    segment: Segment | None = None
    source: AudioBuffer

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)


class RenderedResult(BaseModel):
    buffer: AudioBuffer
    wav: bytes
    handle: str
    params: ProcessingParams
    segment: Segment | None = None
    generation: int
    requested_format: OutputFormat
    container: Literal["WAV"] = "WAV"

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    @property
    def filename(self) -> str:
        return build_filename(self.segment, self.params)


class CoordinatorHooks(BaseModel):
    on_result: Callable[[RenderedResult], None] | None = None
    on_processing_change: Callable[[bool], None] | None = None
    on_error: Callable[[ToneTuneError], None] | None = None

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)


class RenderCoordinator:
    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        hooks: CoordinatorHooks | None = None,
        decoder: Decoder = decode,
        handles: HandleRegistry | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._hooks = hooks or CoordinatorHooks()
        self._decoder = decoder
        self._handles = handles if handles is not None else HandleRegistry()
        self._store = ParameterStore(self._config.initial_params)
        self._segments = SegmentManager()
        self._source: AudioBuffer | None = None
        self._current: RenderedResult | None = None
        self._generation = 0
        self._debounce_task: asyncio.Task[None] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._pending: RenderJob | None = None
        self._waiters: dict[int, asyncio.Future[RenderedResult | None]] = {}
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tonetune-render")
        self._closed = False

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def params(self) -> ProcessingParams:
        return self._store.get()

    @property
    def segments(self) -> SegmentManager:
        return self._segments

    @property
    def source(self) -> AudioBuffer | None:
        return self._source

    @property
    def current_result(self) -> RenderedResult | None:
        return self._current

    @property
    def is_processing(self) -> bool:
        return self._worker is not None

    @property
    def is_idle(self) -> bool:
        """No render running and none waiting for its debounce window."""
        return self._worker is None and self._debounce_task is None

    @property
    def generation(self) -> int:
        return self._generation

    # ---- mutations -------------------------------------------------------

    def update_params(self, partial: UpdateInput) -> ProcessingParams:
        update = coerce_update(partial)
        if is_empty_update(update):
            return self.params
        params = self._store.update(update)
        self._schedule()
        return params

    def apply_preset(self, name: PresetInput) -> ProcessingParams:
        before = self.params
        params = self._store.apply_preset(name)
        if params is not before:
            self._schedule()
        return params

    def reset_params(self) -> ProcessingParams:
        params = self._store.reset()
        self._schedule()
        return params

    def select_segment(self, segment: Segment) -> bool:
        accepted = self._segments.select(segment)
        if accepted and self._config.crop_to_segment:
            self._schedule()
        return accepted

    def drag_segment(self, proposed: Segment) -> Segment:
        return self._segments.drag(proposed)

    def end_drag(self, proposed: Segment) -> Segment | None:
        """Commit a drag; re-renders the crop when the selection moved."""
        before = self._segments.segment
        committed = self._segments.end_drag(proposed)
        if committed != before and self._config.crop_to_segment:
            self._schedule()
        return committed

    async def load_source(self, data: bytes) -> AudioBuffer:
        loop = asyncio.get_running_loop()
        try:
            buffer = await loop.run_in_executor(self._executor, self._decoder, data)
        except DecodeError as exc:
            _LOGGER.warning("Keeping previous source, decode failed: %s", exc)
            self._report(exc)
            raise
        except Exception as exc:
            error = DecodeError(f"decoder failed: {exc}")
            _LOGGER.warning("Keeping previous source, decode failed: %s", exc, exc_info=debug_enabled())
            self._report(error)
            raise error from exc
        await self.load_buffer(buffer)
        return buffer

    async def load_buffer(self, buffer: AudioBuffer) -> None:
        self._cancel_debounce()
        self._drop_pending()
        self._release_current()
        self._source = buffer
        self._segments.load(buffer.duration)
        _LOGGER.info(
            "Loaded source: %.3fs, %d channel(s) at %d Hz",
            buffer.duration,
            buffer.channels,
            buffer.sample_rate,
        )
        self._schedule()

    # ---- rendering -------------------------------------------------------

    async def process_now(self) -> RenderedResult | None:
        """Render the current state immediately.

        Resolves to the published result, or None when a newer request
        superseded this one. Re-raises RenderError on failure.
        """

        if self._source is None or self._closed:
            return None
        self._cancel_debounce()
        self._generation += 1
        job = self._snapshot()
        waiter: asyncio.Future[RenderedResult | None] = asyncio.get_running_loop().create_future()
        self._waiters[job.generation] = waiter
        self._enqueue(job)
        return await waiter

    async def export(self, segment: Segment | None = None) -> tuple[bytes, str]:
        """Render current params over ``segment`` (default: the selection) for download.

        The current result is left untouched.
        """

        source = self._source
        if source is None:
            raise RenderError("no source loaded")
        selected = segment if segment is not None else self._segments.segment
        job = RenderJob(
            generation=self._generation,
            params=self.params,
            segment=selected,
            source=source,
        )
        loop = asyncio.get_running_loop()
        _buffer, wav = await loop.run_in_executor(self._executor, self._render_job, job)
        return wav, build_filename(selected, job.params)

    async def aclose(self) -> None:
        self._closed = True
        self._cancel_debounce()
        self._drop_pending()
        worker = self._worker
        if worker is not None:
            await asyncio.gather(worker, return_exceptions=True)
        self._release_current()
        self._executor.shutdown(wait=False)

    async def __aenter__(self) -> "RenderCoordinator":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    # ---- internals -------------------------------------------------------

    def _snapshot(self) -> RenderJob:
        assert self._source is not None
        segment = self._segments.segment if self._config.crop_to_segment else None
        return RenderJob(
            generation=self._generation,
            params=self.params,
            segment=segment,
            source=self._source,
        )

    def _schedule(self) -> None:
        self._generation += 1
        if self._source is None or self._closed:
            return
        self._cancel_debounce()
        loop = asyncio.get_running_loop()
        self._debounce_task = loop.create_task(self._debounced())

    async def _debounced(self) -> None:
        await asyncio.sleep(self._config.debounce_seconds)
        self._debounce_task = None
        self._enqueue(self._snapshot())

    def _cancel_debounce(self) -> None:
        task = self._debounce_task
        self._debounce_task = None
        if task is not None and not task.done():
            task.cancel()

    def _enqueue(self, job: RenderJob) -> None:
        if self._worker is not None:
            self._drop_pending()
            self._pending = job
            _LOGGER.debug("Render %d queued behind the running render", job.generation)
            return
        self._worker = asyncio.get_running_loop().create_task(self._drain(job))
        self._set_processing(True)

    def _drop_pending(self) -> None:
        pending = self._pending
        self._pending = None
        if pending is not None:
            self._settle(pending.generation, None)

    async def _drain(self, job: RenderJob) -> None:
        next_job: RenderJob | None = job
        try:
            while next_job is not None:
                try:
                    await self._execute(next_job)
                except Exception as exc:
                    _LOGGER.warning(
                        "Render %d aborted: %s", next_job.generation, exc, exc_info=debug_enabled()
                    )
                    self._settle(
                        next_job.generation, None, error=RenderError(f"render aborted: {exc}")
                    )
                next_job, self._pending = self._pending, None
        finally:
            self._worker = None
            self._set_processing(False)

    async def _execute(self, job: RenderJob) -> None:
        loop = asyncio.get_running_loop()
        try:
            buffer, wav = await loop.run_in_executor(self._executor, self._render_job, job)
        except ToneTuneError as exc:
            if job.generation != self._generation:
                _LOGGER.debug("Superseded render %d failed: %s", job.generation, exc)
                self._settle(job.generation, None)
                return
            _LOGGER.warning("Render %d failed: %s", job.generation, exc, exc_info=debug_enabled())
            self._report(exc)
            self._settle(job.generation, None, error=exc)
            return

        if job.generation != self._generation or self._closed:
            _LOGGER.debug("Discarding stale render %d (current %d)", job.generation, self._generation)
            self._settle(job.generation, None)
            return
        result = self._publish(job, buffer, wav)
        self._settle(job.generation, result)

    def _render_job(self, job: RenderJob) -> tuple[AudioBuffer, bytes]:
        """Runs on the render thread."""
        try:
            buffer = render(
                job.source,
                job.params,
                job.segment,
                profile=self._config.profile,
                rng=self._config.make_rng(),
            )
            return buffer, encode_wav(buffer)
        except ToneTuneError:
            raise
        except Exception as exc:
            raise RenderError(f"render failed: {exc}") from exc

    def _publish(self, job: RenderJob, buffer: AudioBuffer, wav: bytes) -> RenderedResult:
        self._release_current()
        result = RenderedResult(
            buffer=buffer,
            wav=wav,
            handle=self._handles.register(wav),
            params=job.params,
            segment=job.segment,
            generation=job.generation,
            requested_format=job.params.output_format,
        )
        self._current = result
        _LOGGER.info("Published render %d as %s", job.generation, result.handle)
        self._call_hook("on_result", self._hooks.on_result, result)
        return result

    def _release_current(self) -> None:
        current = self._current
        self._current = None
        if current is not None:
            self._handles.revoke(current.handle)

    def _settle(
        self,
        generation: int,
        result: RenderedResult | None,
        *,
        error: ToneTuneError | None = None,
    ) -> None:
        waiter = self._waiters.pop(generation, None)
        if waiter is None or waiter.done():
            return
        if error is not None:
            waiter.set_exception(error)
        else:
            waiter.set_result(result)

    def _set_processing(self, processing: bool) -> None:
        self._call_hook("on_processing_change", self._hooks.on_processing_change, processing)

    def _report(self, error: ToneTuneError) -> None:
        self._call_hook("on_error", self._hooks.on_error, error)

    def _call_hook(self, name: str, hook: Callable[[Any], None] | None, value: Any) -> None:
        if hook is None:
            return
        try:
            hook(value)
        except Exception as exc:
            _LOGGER.warning("%s hook failed: %s", name, exc, exc_info=debug_enabled())

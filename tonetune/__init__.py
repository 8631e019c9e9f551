from __future__ import annotations

from .audio import DEFAULT_SAMPLE_RATE, AudioBuffer, decode, load_file
from .chain import RenderContext, Stage, build_chain
from .config import EngineConfig
from .coordinator import CoordinatorHooks, RenderCoordinator, RenderedResult, RenderJob
from .errors import (
    DecodeError,
    InvalidParamsError,
    PlaybackError,
    RenderError,
    ToneTuneError,
    UploadError,
)
from .handles import HandleRegistry
from .logging_utils import configure_logging as _configure_logging
from .params import ParamsUpdate, ProcessingParams, merge_params, parse_params
from .playback import (
    PlaybackHooks,
    PlaybackScheduler,
    PlaybackState,
    PlaybackTransport,
    SoundDeviceTransport,
)
from .presets import Preset, neutral_params, preset_names, preset_params
from .render import render
from .reverb import synthesize_impulse
from .segments import Segment, SegmentManager, constrain_segment
from .store import ParameterStore
from .upload import DirectoryUploader, build_filename, submit
from .wav import encode_wav, parse_wav_header, write_wav

__all__ = [
    "DEFAULT_SAMPLE_RATE",
    "AudioBuffer",
    "CoordinatorHooks",
    "DecodeError",
    "DirectoryUploader",
    "EngineConfig",
    "HandleRegistry",
    "InvalidParamsError",
    "ParameterStore",
    "ParamsUpdate",
    "PlaybackError",
    "PlaybackHooks",
    "PlaybackScheduler",
    "PlaybackState",
    "PlaybackTransport",
    "Preset",
    "ProcessingParams",
    "RenderContext",
    "RenderCoordinator",
    "RenderError",
    "RenderJob",
    "RenderedResult",
    "Segment",
    "SegmentManager",
    "SoundDeviceTransport",
    "Stage",
    "ToneTuneError",
    "UploadError",
    "build_chain",
    "build_filename",
    "constrain_segment",
    "decode",
    "encode_wav",
    "load_file",
    "merge_params",
    "neutral_params",
    "parse_params",
    "parse_wav_header",
    "preset_names",
    "preset_params",
    "render",
    "submit",
    "synthesize_impulse",
    "write_wav",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging

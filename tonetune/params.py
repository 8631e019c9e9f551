from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidParamsError

_LOGGER = logging.getLogger("tonetune.params")

OutputFormat = Literal["WAV", "OPUS", "MP3"]
SampleRateLabel = Literal["22.05kHz", "44.1kHz", "48kHz", "96kHz"]
BitRateLabel = Literal["16", "24", "32", "64", "96", "128", "160", "192", "256", "320"]

# Valid (low, high) range of every numeric field.
PARAM_RANGES: Mapping[str, tuple[float, float]] = MappingProxyType(
    {
        "clarity": (0.0, 100.0),
        "volume_gain": (0.0, 100.0),
        "reverb": (0.0, 100.0),
        "decay_time": (0.0, 100.0),
        "stereo_width": (0.0, 100.0),
        "noise_reduction": (0.0, 100.0),
        "low_freq": (-20.0, 20.0),
        "mid_freq": (-20.0, 20.0),
        "high_freq": (-20.0, 20.0),
        "bass_boost": (0.0, 100.0),
        "voice_mid_freq": (0.0, 100.0),
        "high_freq_smooth": (0.0, 100.0),
        "low_freq_clear": (0.0, 100.0),
    }
)

# Neutral value of every numeric field: flat EQ, unity gain, no effects.
# Also the fallback for values that are not finite numbers.
NEUTRAL_VALUES: Mapping[str, float] = MappingProxyType(
    {
        "clarity": 0.0,
        "volume_gain": 50.0,
        "reverb": 0.0,
        "decay_time": 50.0,
        "stereo_width": 50.0,
        "noise_reduction": 0.0,
        "low_freq": 0.0,
        "mid_freq": 0.0,
        "high_freq": 0.0,
        "bass_boost": 0.0,
        "voice_mid_freq": 50.0,
        "high_freq_smooth": 50.0,
        "low_freq_clear": 50.0,
    }
)

_NUMERIC_FIELDS = tuple(PARAM_RANGES)


def coerce_number(value: object, default: float) -> float:
    """Convert ``value`` to a finite float, falling back to ``default``."""

    match value:
        case None:
            return default
        case str():
            try:
                number = float(value.strip())
            except ValueError:
                return default
        case _:
            try:
                number = float(value)  # type: ignore[arg-type]
            except (TypeError, ValueError):
                return default
    return number if math.isfinite(number) else default


def clamp_param(name: str, value: object) -> float:
    """Coerce and clamp a numeric parameter into its valid range."""

    try:
        low, high = PARAM_RANGES[name]
    except KeyError:
        raise InvalidParamsError(f"Unknown numeric parameter: {name!r}") from None
    number = coerce_number(value, NEUTRAL_VALUES[name])
    return min(max(number, low), high)


def _normalize_format(value: object) -> object:
    if isinstance(value, str):
        return value.strip().upper()
    return value


def _normalize_sample_rate(value: object) -> object:
    if isinstance(value, str):
        text = value.strip()
        if text.lower().endswith("khz"):
            return text[:-3] + "kHz"
        return text
    return value


def _normalize_bit_rate(value: object) -> object:
    match value:
        case bool():
            return value
        case int():
            return str(value)
        case str():
            text = value.strip().lower()
            for suffix in ("kbps", "bit"):
                if text.endswith(suffix):
                    text = text[: -len(suffix)]
            return text
        case _:
            return value


class ProcessingParams(BaseModel):
    """Full parameter set driving the signal chain.

    Field defaults are the neutral values; presets live in ``tonetune.presets``.
    """

    output_format: OutputFormat = "WAV"
    sample_rate: SampleRateLabel = "44.1kHz"
    bit_rate: BitRateLabel = "160"

    clarity: float = 0.0
    volume_gain: float = 50.0
    reverb: float = 0.0
    decay_time: float = 50.0
    stereo_width: float = 50.0
    noise_reduction: float = 0.0
    low_freq: float = 0.0
    mid_freq: float = 0.0
    high_freq: float = 0.0
    bass_boost: float = 0.0

    voice_mid_freq: float = 50.0
    high_freq_smooth: float = 50.0
    low_freq_clear: float = 50.0

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def _coerce_numeric(cls, value: object, info: ValidationInfo) -> float:
        assert info.field_name is not None
        return clamp_param(info.field_name, value)

    @field_validator("output_format", mode="before")
    @classmethod
    def _coerce_format(cls, value: object) -> object:
        return _normalize_format(value)

    @field_validator("sample_rate", mode="before")
    @classmethod
    def _coerce_sample_rate(cls, value: object) -> object:
        return _normalize_sample_rate(value)

    @field_validator("bit_rate", mode="before")
    @classmethod
    def _coerce_bit_rate(cls, value: object) -> object:
        return _normalize_bit_rate(value)

    def to_dict(self, *, by_alias: bool = False) -> dict[str, Any]:
        return self.model_dump(by_alias=by_alias)


class ParamsUpdate(BaseModel):
    """Partial parameter update; unknown keys are rejected."""

    output_format: Optional[OutputFormat] = None
    sample_rate: Optional[SampleRateLabel] = None
    bit_rate: Optional[BitRateLabel] = None

    clarity: Optional[float] = None
    volume_gain: Optional[float] = None
    reverb: Optional[float] = None
    decay_time: Optional[float] = None
    stereo_width: Optional[float] = None
    noise_reduction: Optional[float] = None
    low_freq: Optional[float] = None
    mid_freq: Optional[float] = None
    high_freq: Optional[float] = None
    bass_boost: Optional[float] = None

    voice_mid_freq: Optional[float] = None
    high_freq_smooth: Optional[float] = None
    low_freq_clear: Optional[float] = None

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def _coerce_numeric(cls, value: object, info: ValidationInfo) -> float | None:
        if value is None:
            return None
        assert info.field_name is not None
        return clamp_param(info.field_name, value)

    @field_validator("output_format", mode="before")
    @classmethod
    def _coerce_format(cls, value: object) -> object:
        return _normalize_format(value)

    @field_validator("sample_rate", mode="before")
    @classmethod
    def _coerce_sample_rate(cls, value: object) -> object:
        return _normalize_sample_rate(value)

    @field_validator("bit_rate", mode="before")
    @classmethod
    def _coerce_bit_rate(cls, value: object) -> object:
        return _normalize_bit_rate(value)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


UpdateInput = ParamsUpdate | Mapping[str, Any]


def parse_params(payload: Mapping[str, Any]) -> ProcessingParams:
    """Parse a full parameter payload, raising InvalidParamsError on failure."""

    try:
        return ProcessingParams.model_validate(dict(payload))
    except ValidationError as exc:
        _LOGGER.warning("Failed to parse params payload: %s", exc)
        raise InvalidParamsError(str(exc)) from exc


def coerce_update(update: UpdateInput) -> ParamsUpdate:
    match update:
        case ParamsUpdate():
            return update
        case Mapping():
            try:
                return ParamsUpdate.model_validate(dict(update))
            except ValidationError as exc:
                _LOGGER.warning("Failed to parse params update: %s", exc)
                raise InvalidParamsError(str(exc)) from exc
        case _:
            raise InvalidParamsError(f"Unsupported update type: {type(update).__name__}")


def merge_params(base: ProcessingParams, update: UpdateInput) -> ProcessingParams:
    """Apply a partial update to a full parameter set."""

    changes = coerce_update(update).changes()
    if not changes:
        return base
    return ProcessingParams.model_validate({**base.model_dump(), **changes})


def is_empty_update(update: UpdateInput) -> bool:
    return not coerce_update(update).changes()

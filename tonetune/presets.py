from __future__ import annotations

from enum import Enum

from .errors import InvalidParamsError
from .params import ProcessingParams

_STANDARD = ProcessingParams(
    output_format="OPUS",
    sample_rate="44.1kHz",
    bit_rate="128",
    clarity=60,
    volume_gain=55,
    reverb=0,
    decay_time=20,
    stereo_width=30,
    noise_reduction=40,
    low_freq=-8,
    mid_freq=2,
    high_freq=4,
    bass_boost=15,
    voice_mid_freq=50,
    high_freq_smooth=50,
    low_freq_clear=50,
)

_RECOMMENDED = ProcessingParams(
    output_format="OPUS",
    sample_rate="96kHz",
    bit_rate="160",
    clarity=85,
    volume_gain=95,
    reverb=0,
    decay_time=15,
    stereo_width=25,
    noise_reduction=20,
    low_freq=-10,
    mid_freq=0,
    high_freq=6,
    bass_boost=25,
    voice_mid_freq=60,
    high_freq_smooth=45,
    low_freq_clear=55,
)

_HIGHEST = ProcessingParams(
    output_format="WAV",
    sample_rate="96kHz",
    bit_rate="32",
    clarity=75,
    volume_gain=85,
    reverb=0,
    decay_time=15,
    stereo_width=45,
    noise_reduction=40,
    low_freq=-5,
    mid_freq=4,
    high_freq=2,
    bass_boost=30,
    voice_mid_freq=75,
    high_freq_smooth=70,
    low_freq_clear=65,
)


class Preset(str, Enum):
    STANDARD = "standard"
    RECOMMENDED = "recommended"
    HIGHEST = "highest"
    CUSTOM = "custom"


PresetInput = Preset | str


def coerce_preset(name: PresetInput) -> Preset:
    if isinstance(name, Preset):
        return name
    try:
        return Preset(str(name).strip().lower())
    except ValueError:
        raise InvalidParamsError(f"Unknown preset: {name!r}") from None


def preset_params(name: PresetInput) -> ProcessingParams | None:
    """Return the template for ``name``; ``custom`` has no template and yields None."""

    preset = coerce_preset(name)
    match preset:
        case Preset.STANDARD:
            return _STANDARD
        case Preset.RECOMMENDED:
            return _RECOMMENDED
        case Preset.HIGHEST:
            return _HIGHEST
        case Preset.CUSTOM:
            return None


def neutral_params() -> ProcessingParams:
    """Flat EQ, unity gain, no effects."""
    return ProcessingParams()


def preset_names() -> list[str]:
    return [preset.value for preset in Preset]

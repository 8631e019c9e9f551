from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from .params import OutputFormat, ProcessingParams

_LOGGER = logging.getLogger("tonetune.capabilities")

DEFAULT_MAX_SAMPLE_RATE = 44_100

_LABEL_RATES: dict[str, int] = {
    "22.05kHz": 22_050,
    "44.1kHz": 44_100,
    "48kHz": 48_000,
    "96kHz": 96_000,
}


class DeviceCapabilities(BaseModel):
    max_sample_rate: Optional[int] = DEFAULT_MAX_SAMPLE_RATE
    supported_formats: tuple[OutputFormat, ...] = ("WAV",)
    device_name: Optional[str] = None
    channels: int = 1

    model_config = ConfigDict(frozen=True, extra="forbid")


def format_sample_rate(rate: float | None) -> str:
    if not rate:
        return "unknown"
    if rate >= 1000:
        return f"{rate / 1000:.1f}kHz"
    return f"{int(rate)}Hz"


def label_to_hz(label: str) -> int:
    return _LABEL_RATES[label]


def probe_capabilities() -> DeviceCapabilities:
    """Ask sounddevice about the default output device; advisory only."""

    try:
        import sounddevice as sd_module  # type: ignore[import]
    except (ImportError, OSError) as exc:
        _LOGGER.info("sounddevice not available: %s", exc)
        return DeviceCapabilities()
    sd: Any = sd_module
    try:
        info = sd.query_devices(kind="output")
    except Exception as exc:
        _LOGGER.info("Querying output device failed: %s", exc)
        return DeviceCapabilities()
    rate = int(info.get("default_samplerate") or DEFAULT_MAX_SAMPLE_RATE)
    return DeviceCapabilities(
        max_sample_rate=rate,
        device_name=info.get("name"),
        channels=int(info.get("max_output_channels") or 1),
    )


def advise(params: ProcessingParams, capabilities: DeviceCapabilities) -> list[str]:
    """Warnings about settings the device cannot honour; nothing is clamped."""

    warnings: list[str] = []
    requested = label_to_hz(params.sample_rate)
    if capabilities.max_sample_rate is not None and requested > capabilities.max_sample_rate:
        warnings.append(
            f"Sample rate {params.sample_rate} exceeds the device maximum "
            f"{format_sample_rate(capabilities.max_sample_rate)}"
        )
    if params.output_format not in capabilities.supported_formats:
        warnings.append(f"Output format {params.output_format} is not supported; WAV is written instead")
    return warnings

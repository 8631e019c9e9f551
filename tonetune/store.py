from __future__ import annotations

import logging

from .params import ProcessingParams, UpdateInput, merge_params
from .presets import Preset, PresetInput, coerce_preset, preset_params

_LOGGER = logging.getLogger("tonetune.store")


def _baseline() -> ProcessingParams:
    baseline = preset_params(Preset.RECOMMENDED)
    assert baseline is not None
    return baseline


class ParameterStore:
    """Holds the current ProcessingParams.

    Every operation is synchronous and only replaces the stored value; nothing
    here schedules rendering.
    """

    def __init__(self, initial: UpdateInput | None = None) -> None:
        params = _baseline()
        if initial is not None:
            params = merge_params(params, initial)
        self._params = params

    def get(self) -> ProcessingParams:
        return self._params

    def update(self, partial: UpdateInput) -> ProcessingParams:
        self._params = merge_params(self._params, partial)
        return self._params

    def apply_preset(self, name: PresetInput) -> ProcessingParams:
        preset = coerce_preset(name)
        template = preset_params(preset)
        if template is None:
            _LOGGER.debug("Preset %s keeps the current params", preset.value)
            return self._params
        self._params = template
        return self._params

    def reset(self) -> ProcessingParams:
        self._params = _baseline()
        return self._params

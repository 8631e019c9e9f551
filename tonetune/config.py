from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any, Literal, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidParamsError
from .params import ParamsUpdate, coerce_update

_LOGGER = logging.getLogger("tonetune.config")

_DEBOUNCE_ENV = "TONETUNE_DEBOUNCE_MS"
_PROFILE_ENV = "TONETUNE_PROFILE"
_SEED_ENV = "TONETUNE_SEED"

DEFAULT_DEBOUNCE_SECONDS = 0.3


class EngineConfig(BaseModel):
    """Engine-wide settings for the render coordinator."""

    debounce_seconds: float = Field(default=DEFAULT_DEBOUNCE_SECONDS, ge=0.0)
    profile: Literal["basic", "professional"] = "professional"
    seed: Optional[int] = None
    crop_to_segment: bool = False
    initial_params: Optional[ParamsUpdate] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("initial_params", mode="before")
    @classmethod
    def _coerce_initial(cls, value: object) -> object:
        if value is None or isinstance(value, ParamsUpdate):
            return value
        if isinstance(value, Mapping):
            return coerce_update(value)
        return value

    def make_rng(self) -> np.random.Generator | None:
        """A fresh generator per render; None leaves the reverb unseeded."""
        if self.seed is None:
            return None
        return np.random.default_rng(self.seed)

    @classmethod
    def from_env(cls, **overrides: Any) -> "EngineConfig":
        values: dict[str, Any] = {}
        debounce_ms = os.environ.get(_DEBOUNCE_ENV)
        if debounce_ms:
            try:
                values["debounce_seconds"] = float(debounce_ms) / 1000.0
            except ValueError:
                _LOGGER.warning("Ignoring non-numeric %s=%r", _DEBOUNCE_ENV, debounce_ms)
        profile = os.environ.get(_PROFILE_ENV)
        if profile:
            values["profile"] = profile.strip().lower()
        seed = os.environ.get(_SEED_ENV)
        if seed:
            try:
                values["seed"] = int(seed)
            except ValueError:
                _LOGGER.warning("Ignoring non-integer %s=%r", _SEED_ENV, seed)
        values.update(overrides)
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise InvalidParamsError(f"Invalid engine configuration: {exc}") from exc

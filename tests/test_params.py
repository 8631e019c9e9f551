from __future__ import annotations

import math

import pytest

from tonetune.errors import InvalidParamsError
from tonetune.params import (
    NEUTRAL_VALUES,
    ParamsUpdate,
    ProcessingParams,
    clamp_param,
    coerce_number,
    coerce_update,
    is_empty_update,
    merge_params,
    parse_params,
)


def test_defaults_are_neutral() -> None:
    params = ProcessingParams()
    for name, value in NEUTRAL_VALUES.items():
        assert getattr(params, name) == value
    assert params.output_format == "WAV"


def test_out_of_range_values_are_clamped() -> None:
    params = ProcessingParams(volume_gain=150, low_freq=-50, high_freq=35, clarity=-3)
    assert params.volume_gain == 100
    assert params.low_freq == -20
    assert params.high_freq == 20
    assert params.clarity == 0


@pytest.mark.parametrize("raw", [math.nan, math.inf, -math.inf, "loud", None])
def test_non_finite_values_fall_back_to_neutral(raw: object) -> None:
    params = parse_params({"volumeGain": raw, "stereoWidth": raw})
    assert params.volume_gain == 50
    assert params.stereo_width == 50


def test_numeric_strings_are_parsed() -> None:
    assert clamp_param("clarity", " 42.5 ") == 42.5
    assert coerce_number("7", 0.0) == 7.0


def test_camel_and_snake_names_are_accepted() -> None:
    camel = parse_params({"volumeGain": 70, "lowFreqClear": 60})
    snake = parse_params({"volume_gain": 70, "low_freq_clear": 60})
    assert camel == snake
    assert camel.to_dict(by_alias=True)["volumeGain"] == 70


def test_labels_are_normalized() -> None:
    params = parse_params({"outputFormat": "opus", "sampleRate": "48khz", "bitRate": 128})
    assert params.output_format == "OPUS"
    assert params.sample_rate == "48kHz"
    assert params.bit_rate == "128"
    assert parse_params({"bitRate": "160kbps"}).bit_rate == "160"


@pytest.mark.parametrize(
    "payload",
    [{"outputFormat": "flac"}, {"sampleRate": "8kHz"}, {"bitRate": "100"}, {"wetness": 3}],
)
def test_invalid_labels_and_unknown_fields_raise(payload: dict[str, object]) -> None:
    with pytest.raises(InvalidParamsError):
        parse_params(payload)


def test_unknown_numeric_parameter_raises() -> None:
    with pytest.raises(InvalidParamsError):
        clamp_param("loudness", 3)


def test_merge_only_touches_given_fields() -> None:
    base = ProcessingParams(clarity=10, volume_gain=60)
    merged = merge_params(base, {"clarity": 300})
    assert merged.clarity == 100
    assert merged.volume_gain == 60
    assert base.clarity == 10


def test_update_keeps_none_for_untouched_fields() -> None:
    update = coerce_update({"reverb": 20})
    assert isinstance(update, ParamsUpdate)
    assert update.changes() == {"reverb": 20.0}
    assert is_empty_update({})
    assert not is_empty_update(update)


def test_update_rejects_unknown_keys() -> None:
    with pytest.raises(InvalidParamsError):
        coerce_update({"bogus": 1})
    with pytest.raises(InvalidParamsError):
        coerce_update(["clarity", 3])  # type: ignore[arg-type]

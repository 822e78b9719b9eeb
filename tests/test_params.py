from __future__ import annotations

import json

import pytest

from fluidics_core import load_parameters
from fluidics_core.errors import ParameterError
from fluidics_core.params import ProcessParameters

VALID = {
    "minimumNodeDistance": 0.001,
    "minimumChannelLength": 0.00001,
    "maximumChipSizeX": 0.04,
    "maximumChipSizeY": 0.05,
    "criticalCrossingAngle": 0.0872664626,
}


def _write(tmp_path, data, name="params.json"):
    path = tmp_path / name
    path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
    return path


def test_load_valid_file(tmp_path):
    p = ProcessParameters.load(_write(tmp_path, VALID))
    assert p.minimum_channel_length == 0.00001
    assert p.maximum_chip_size_x == 0.04
    assert p.maximum_chip_dimension == 0.05


def test_numeric_strings_are_accepted(tmp_path):
    p = ProcessParameters.load(_write(tmp_path, {**VALID, "maximumChipSizeX": "0.03"}))
    assert p.maximum_chip_size_x == 0.03


def test_test_data_is_a_5cm_chip(params):
    assert params.maximum_chip_size_x == params.maximum_chip_size_y == 0.05
    assert params.critical_crossing_angle == pytest.approx(0.0872664626)


def test_missing_key(tmp_path):
    data = {k: v for k, v in VALID.items() if k != "criticalCrossingAngle"}
    with pytest.raises(ParameterError) as ei:
        ProcessParameters.load(_write(tmp_path, data))
    assert ei.value.key == "criticalCrossingAngle"


@pytest.mark.parametrize("value", ["wide", True, None, [0.05]])
def test_non_numeric_value(tmp_path, value):
    with pytest.raises(ParameterError) as ei:
        ProcessParameters.load(_write(tmp_path, {**VALID, "maximumChipSizeY": value}))
    assert ei.value.key == "maximumChipSizeY"


def test_invalid_json(tmp_path):
    with pytest.raises(ParameterError):
        ProcessParameters.load(_write(tmp_path, "{not json"))


def test_top_level_must_be_an_object(tmp_path):
    with pytest.raises(ParameterError):
        ProcessParameters.load(_write(tmp_path, [1, 2, 3]))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_parameters(tmp_path / "absent.json")


def test_factory_loader(tmp_path):
    assert load_parameters(_write(tmp_path, VALID)).maximum_chip_size_y == 0.05

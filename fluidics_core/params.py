"""
Process Parameters

Limits of the manufacturing process. Read once per run and never modified.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from .errors import ParameterError


@dataclass(frozen=True)
class ProcessParameters:
    minimum_node_distance: float    # meters
    minimum_channel_length: float   # meters
    maximum_chip_size_x: float      # meters
    maximum_chip_size_y: float      # meters
    critical_crossing_angle: float  # radians

    JSON_KEYS = (
        "minimumNodeDistance",
        "minimumChannelLength",
        "maximumChipSizeX",
        "maximumChipSizeY",
        "criticalCrossingAngle",
    )

    @property
    def maximum_chip_dimension(self) -> float:
        return max(self.maximum_chip_size_x, self.maximum_chip_size_y)

    @classmethod
    def test_data(cls) -> "ProcessParameters":
        """Dimensions of a 5 cm x 5 cm test chip with a 5 degree crossing angle."""
        return cls(0.001, 0.00001, 0.05, 0.05, 0.0872664626)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessParameters":
        return cls(*(_read_double(data, key) for key in cls.JSON_KEYS))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ProcessParameters":
        """
        Load parameters from a JSON object file.

        Raises:
            FileNotFoundError: the file does not exist.
            ParameterError: invalid JSON, a missing key, or a non-numeric value.
        """
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.exists():
            raise FileNotFoundError(f"❌ Process parameter file not found at: '{path_obj}'")
        try:
            data = json.loads(path_obj.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ParameterError(f"process parameter file '{path_obj}' is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ParameterError(f"process parameter file '{path_obj}' must contain a JSON object")
        return cls.from_dict(data)


def _read_double(data: Dict[str, Any], key: str) -> float:
    if key not in data:
        raise ParameterError(
            f"required parameter '{key}' not found in provided JSON file", key)
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ParameterError(f"parameter '{key}' must be a double-precision value", key)
    try:
        return float(value)
    except ValueError as e:
        raise ParameterError(f"parameter '{key}' must be a double-precision value", key) from e

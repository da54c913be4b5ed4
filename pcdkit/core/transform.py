from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

POSITION_AXES = {"x": 0, "y": 1, "z": 2}
NORMAL_AXES = {"normal_x": 0, "normal_y": 1, "normal_z": 2}


class CoordinateSystem(str, Enum):
    RIGHT_HANDED = "right_handed"
    LEFT_HANDED = "left_handed"


@dataclass(frozen=True)
class TransformOptions:
    """Per-axis scaling applied to positions and normals while decoding.

    Positions are multiplied by the axis scale; normals only take its sign, so a
    reflection flips their direction without changing their length.
    """
    source_system: CoordinateSystem = CoordinateSystem.RIGHT_HANDED
    target_system: CoordinateSystem = CoordinateSystem.RIGHT_HANDED
    scale_x: float = 1.0
    scale_y: float = 1.0
    scale_z: float = 1.0

    @property
    def needs_transformation(self) -> bool:
        return (
            self.source_system != self.target_system
            or self.scale_x != 1.0
            or self.scale_y != 1.0
            or self.scale_z != 1.0
        )

    @property
    def scales(self) -> tuple[float, float, float]:
        return (self.scale_x, self.scale_y, self.scale_z)

    @classmethod
    def left_to_right_handed(cls) -> "TransformOptions":
        return cls(CoordinateSystem.LEFT_HANDED, CoordinateSystem.RIGHT_HANDED, scale_y=-1.0)

    @classmethod
    def right_to_left_handed(cls) -> "TransformOptions":
        return cls(CoordinateSystem.RIGHT_HANDED, CoordinateSystem.LEFT_HANDED, scale_y=-1.0)

    def factor_for(self, name: str) -> Optional[float]:
        """Multiplier for a canonical field name, or None when the field is left alone."""
        if not self.needs_transformation:
            return None
        if name in POSITION_AXES:
            return float(self.scales[POSITION_AXES[name]])
        if name in NORMAL_AXES:
            return float(np.sign(self.scales[NORMAL_AXES[name]]))
        return None


def transform_value(name: str, value, options: Optional[TransformOptions]):
    if options is None or not isinstance(value, float):
        return value
    factor = options.factor_for(name)
    return value if factor is None else value * factor


def transform_column(name: str, column: np.ndarray, options: Optional[TransformOptions]) -> np.ndarray:
    """Scale a float column in its own precision; integer columns pass through."""
    if options is None or column.dtype.kind != "f":
        return column
    factor = options.factor_for(name)
    if factor is None:
        return column
    return column * column.dtype.type(factor)

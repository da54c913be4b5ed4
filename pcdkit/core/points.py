"""Built-in point shapes mirroring the common PCL point types."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Tuple

from .schema import PointShape, point_shape, shape_of


@point_shape(x="f4", y="f4", z="f4")
@dataclass
class PointXYZ:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@point_shape(x="f4", y="f4", z="f4", intensity="f4")
@dataclass
class PointXYZI:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    intensity: float = 0.0


@point_shape(x="f4", y="f4", z="f4", label="u4")
@dataclass
class PointXYZL:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    label: int = 0


@point_shape(x="f4", y="f4", z="f4", rgba="u4")
@dataclass
class PointXYZRGBA:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    rgba: int = 0   # 0xAARRGGBB

    @staticmethod
    def pack(r: int, g: int, b: int, a: int = 255) -> int:
        return ((a & 0xFF) << 24) | ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)

    @property
    def color(self) -> Tuple[int, int, int, int]:
        v = int(self.rgba)
        return (v >> 16) & 0xFF, (v >> 8) & 0xFF, v & 0xFF, (v >> 24) & 0xFF


@point_shape(
    x="f4", y="f4", z="f4",
    normal_x="f4", normal_y="f4", normal_z="f4",
    curvature="f4",
)
@dataclass
class PointNormal:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    normal_x: float = 0.0
    normal_y: float = 0.0
    normal_z: float = 0.0
    curvature: float = 0.0


SHAPES: Dict[str, PointShape] = {
    "xyz": shape_of(PointXYZ),
    "xyzi": shape_of(PointXYZI),
    "xyzl": shape_of(PointXYZL),
    "xyzrgba": shape_of(PointXYZRGBA),
    "normal": shape_of(PointNormal),
}

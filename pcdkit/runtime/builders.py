from __future__ import annotations

from typing import Optional

from ..config import ConvertConfig, TransformConfig
from ..core.exporter import PcdWriter
from ..core.points import SHAPES
from ..core.schema import PointShape
from ..core.transform import CoordinateSystem, TransformOptions


def build_shape(name: str) -> PointShape:
    try:
        return SHAPES[name.lower()]
    except KeyError:
        raise ValueError(f"Unsupported point shape '{name}' (choose from {', '.join(sorted(SHAPES))})") from None


def build_transform(cfg: Optional[TransformConfig]) -> Optional[TransformOptions]:
    if cfg is None:
        return None
    if cfg.preset == "left_to_right":
        return TransformOptions.left_to_right_handed()
    if cfg.preset == "right_to_left":
        return TransformOptions.right_to_left_handed()
    sx, sy, sz = cfg.scale if cfg.scale is not None else (1.0, 1.0, 1.0)
    return TransformOptions(
        source_system=cfg.source_system or CoordinateSystem.RIGHT_HANDED,
        target_system=cfg.target_system or CoordinateSystem.RIGHT_HANDED,
        scale_x=sx,
        scale_y=sy,
        scale_z=sz,
    )


def build_writer(cfg: ConvertConfig, shape: PointShape) -> PcdWriter:
    out_cfg = cfg.output
    return PcdWriter(str(out_cfg.path), encoding=out_cfg.encoding, shape=shape)

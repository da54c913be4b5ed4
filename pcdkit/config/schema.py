from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, field_validator, model_validator

from ..core.transform import CoordinateSystem

ShapeName = Literal["xyz", "xyzi", "xyzl", "xyzrgba", "normal"]


class TransformConfig(BaseModel):
    preset: Optional[Literal["left_to_right", "right_to_left"]] = None
    source_system: Optional[CoordinateSystem] = None
    target_system: Optional[CoordinateSystem] = None
    scale: Optional[tuple[float, float, float]] = None

    @model_validator(mode="after")
    def _validate_preset(self) -> "TransformConfig":
        explicit = (self.source_system, self.target_system, self.scale)
        if self.preset is not None and any(v is not None for v in explicit):
            raise ValueError("transform.preset cannot be combined with source_system/target_system/scale")
        return self


class InputConfig(BaseModel):
    path: Path
    shape: ShapeName = "xyz"
    strict: bool = False


class OutputConfig(BaseModel):
    path: Path
    encoding: Literal["ascii", "binary"] = "binary"

    @field_validator("encoding", mode="before")
    @classmethod
    def _reject_compressed(cls, value):
        if isinstance(value, str) and value.lower() == "binary_compressed":
            raise ValueError("binary_compressed output is not supported; use ascii or binary")
        return value.lower() if isinstance(value, str) else value


class ConvertConfig(BaseModel):
    input: InputConfig
    output: OutputConfig
    transform: Optional[TransformConfig] = None


def load_config(path: str | Path) -> ConvertConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping.")
    cfg = ConvertConfig.model_validate(data)
    if not cfg.input.path.is_absolute():
        cfg.input.path = (path.parent / cfg.input.path).resolve()
    if not cfg.output.path.is_absolute():
        cfg.output.path = (path.parent / cfg.output.path).resolve()
    return cfg

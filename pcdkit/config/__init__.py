"""Configuration loading utilities for pcdkit conversion jobs."""

from .schema import (
    ConvertConfig,
    InputConfig,
    OutputConfig,
    TransformConfig,
    load_config,
)

__all__ = ["ConvertConfig", "InputConfig", "OutputConfig", "TransformConfig", "load_config"]

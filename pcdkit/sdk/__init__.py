"""Programmatic entry points mirroring the CLI."""

from .run import ConvertResult, convert_from_config

__all__ = ["ConvertResult", "convert_from_config"]

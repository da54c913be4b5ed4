"""Error kinds raised by the PCD core."""

from __future__ import annotations


class PCDError(Exception):
    """Base class for every error raised while reading or writing PCD data."""


class MissingDataField(PCDError):
    """The header ended without a terminating DATA line."""


class MalformedHeaderField(PCDError, ValueError):
    """A header directive carried a value that could not be parsed."""


class UnsupportedEncoding(PCDError, ValueError):
    """The requested payload encoding cannot be read or written."""


class DecompressionFailure(PCDError):
    """An LZF stream is inconsistent with its declared output length."""


class IndexOutOfRange(PCDError, IndexError):
    """Organized access outside the cloud's width x height grid."""


class MalformedRecord(PCDError, ValueError):
    """An ASCII record could not be parsed (strict decoding only)."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(f"line {line}: {message}")
        self.line = line

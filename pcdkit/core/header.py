from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from .errors import MalformedHeaderField, UnsupportedEncoding


class FieldType(str, Enum):
    SIGNED = "I"
    UNSIGNED = "U"
    FLOAT = "F"

    @classmethod
    def parse(cls, token: str) -> "FieldType":
        try:
            return cls(token.upper())
        except ValueError:
            raise MalformedHeaderField(f"Unknown TYPE '{token}' (expected F, I or U)") from None


class DataEncoding(str, Enum):
    ASCII = "ascii"
    BINARY = "binary"
    BINARY_COMPRESSED = "binary_compressed"

    @classmethod
    def parse(cls, value: Union[str, "DataEncoding"]) -> "DataEncoding":
        """Strict lookup used by writers and configuration; unknown names raise."""
        if isinstance(value, DataEncoding):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnsupportedEncoding(f"Unsupported data encoding: {value!r}") from None


@dataclass
class Header:
    """In-memory PCD v0.7 header.

    ``counts`` may be left empty, in which case every field gets a count of 1.
    """
    version: str = "0.7"
    fields: List[str] = field(default_factory=list)
    sizes: List[int] = field(default_factory=list)
    types: List[FieldType] = field(default_factory=list)
    counts: List[int] = field(default_factory=list)
    width: int = 0
    height: int = 1
    points: int = 0
    encoding: DataEncoding = DataEncoding.ASCII
    is_dense: bool = True
    viewpoint: Optional[Tuple[float, ...]] = None

    def __post_init__(self) -> None:
        self.types = [t if isinstance(t, FieldType) else FieldType.parse(t) for t in self.types]
        if not self.counts and self.fields:
            self.counts = [1] * len(self.fields)
        n = len(self.fields)
        for name, values in (("SIZE", self.sizes), ("TYPE", self.types), ("COUNT", self.counts)):
            if len(values) != n:
                raise MalformedHeaderField(f"{name} lists {len(values)} entries but FIELDS lists {n}")
        for name, values in (("SIZE", self.sizes), ("COUNT", self.counts)):
            if any(v <= 0 for v in values):
                raise MalformedHeaderField(f"{name} entries must be positive, got {values}")
        for name, value in (("WIDTH", self.width), ("HEIGHT", self.height), ("POINTS", self.points)):
            if value < 0:
                raise MalformedHeaderField(f"{name} must not be negative, got {value}")
        if self.viewpoint is not None:
            self.viewpoint = tuple(float(v) for v in self.viewpoint)

    @property
    def record_size(self) -> int:
        return sum(s * c for s, c in zip(self.sizes, self.counts))

    @property
    def is_organized(self) -> bool:
        return self.height > 1

    def offsets(self) -> List[int]:
        out: List[int] = []
        offset = 0
        for s, c in zip(self.sizes, self.counts):
            out.append(offset)
            offset += s * c
        return out

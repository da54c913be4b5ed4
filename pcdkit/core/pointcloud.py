from __future__ import annotations
from dataclasses import dataclass, field
from typing import Generic, Iterable, Iterator, List, Optional, TypeVar

import numpy as np

from .errors import IndexOutOfRange
from .header import Header
from .schema import PointShape

PointT = TypeVar("PointT")


@dataclass
class PointCloud(Generic[PointT]):
    """Ordered points of one shape plus the header they came from (or will be written with).

    A cloud built in memory gets a header with ``width = len(points)`` and
    ``height = 1`` unless dimensions are given.
    """
    points: List[PointT] = field(default_factory=list)
    header: Optional[Header] = None
    shape: Optional[PointShape] = None

    def __post_init__(self) -> None:
        self.points = list(self.points)
        if self.header is None:
            self.header = Header(width=len(self.points), height=1, points=len(self.points))

    @classmethod
    def organized(cls, points: Iterable[PointT], width: int, height: int,
                  shape: Optional[PointShape] = None) -> "PointCloud[PointT]":
        points = list(points)
        if width * height != len(points):
            raise ValueError(f"{width}x{height} grid needs {width * height} points, got {len(points)}")
        return cls(points, Header(width=width, height=height, points=len(points)), shape)

    # -- dimensions --
    @property
    def width(self) -> int:
        return self.header.width

    @width.setter
    def width(self, value: int) -> None:
        self.header.width = int(value)

    @property
    def height(self) -> int:
        return self.header.height

    @height.setter
    def height(self, value: int) -> None:
        self.header.height = int(value)

    @property
    def is_dense(self) -> bool:
        return self.header.is_dense

    @is_dense.setter
    def is_dense(self, value: bool) -> None:
        self.header.is_dense = bool(value)

    @property
    def is_organized(self) -> bool:
        return self.height > 1

    # -- sequence protocol --
    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[PointT]:
        return iter(self.points)

    def __getitem__(self, index: int) -> PointT:
        return self.points[index]

    def _grid_index(self, col: int, row: int) -> int:
        if not self.is_organized:
            raise ValueError("Point cloud is not organized")
        if not (0 <= col < self.width and 0 <= row < self.height):
            raise IndexOutOfRange(f"({col}, {row}) outside {self.width}x{self.height} grid")
        index = row * self.width + col
        if index >= len(self.points):
            raise IndexOutOfRange(f"({col}, {row}) -> index {index} beyond {len(self.points)} points")
        return index

    def at(self, col: int, row: int) -> PointT:
        return self.points[self._grid_index(col, row)]

    def set_at(self, col: int, row: int, point: PointT) -> None:
        self.points[self._grid_index(col, row)] = point

    def append(self, point: PointT) -> None:
        self.points.append(point)

    def extend(self, points: Iterable[PointT]) -> None:
        self.points.extend(points)

    def clear(self) -> None:
        self.points.clear()
        self.header.width = 0
        self.header.height = 1
        self.header.points = 0

    def xyz(self) -> np.ndarray:
        """(N, 3) float32 positions; every point must expose x, y and z."""
        if not self.points:
            return np.zeros((0, 3), dtype=np.float32)
        return np.array([(p.x, p.y, p.z) for p in self.points], dtype=np.float32)

    def __repr__(self) -> str:
        name = self.shape.name if self.shape is not None else "?"
        return f"PointCloud<{name}>(count={len(self)}, width={self.width}, height={self.height})"

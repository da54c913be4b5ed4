from __future__ import annotations
from dataclasses import dataclass
from typing import Any, BinaryIO, Optional, Tuple, Union
import os
import pathlib

from .codec import PointEncoder
from .errors import UnsupportedEncoding
from .header import DataEncoding, Header
from .header_codec import serialize_header
from .pointcloud import PointCloud
from .schema import PointShape, shape_of
from .utils import get_logger

_log = get_logger()

Target = Union[str, os.PathLike, BinaryIO]


def _resolve_shape(cloud: PointCloud, shape: Any = None) -> PointShape:
    if shape is not None:
        return shape_of(shape)
    if cloud.shape is not None:
        return cloud.shape
    if len(cloud) == 0:
        raise ValueError("Cannot derive a field layout from an empty cloud without a shape")
    return shape_of(cloud[0])


def _encode(cloud: PointCloud, shape: Any, encoding: Union[str, DataEncoding]) -> Tuple[Header, bytes]:
    encoding = DataEncoding.parse(encoding)
    if encoding is DataEncoding.BINARY_COMPRESSED:
        raise UnsupportedEncoding("binary_compressed encoding is not supported for writing")
    encoder = PointEncoder(_resolve_shape(cloud, shape))
    header = encoder.header_for(cloud, encoding)
    payload = encoder.encode(cloud.points, encoding)
    return header, serialize_header(header).encode("ascii") + payload


def encode_pcd(
    cloud: PointCloud,
    shape: Any = None,
    encoding: Union[str, DataEncoding] = DataEncoding.ASCII,
) -> bytes:
    """Serialise a cloud into header text plus payload.

    The header is derived from the shape, never copied from ``cloud.header``; only the
    organised dimensions and the viewpoint are carried over.
    """
    return _encode(cloud, shape, encoding)[1]


def write_pcd(
    target: Target,
    cloud: PointCloud,
    shape: Any = None,
    encoding: Union[str, DataEncoding] = DataEncoding.ASCII,
) -> Header:
    """Write ``cloud`` to a path or binary stream; nothing is written if encoding fails."""
    header, data = _encode(cloud, shape, encoding)
    if isinstance(target, (str, os.PathLike)):
        path = pathlib.Path(target)
        with open(path, "wb") as fh:
            fh.write(data)
        name = path.name
    else:
        target.write(data)
        name = getattr(target, "name", "<stream>")
    _log.info("Wrote %d points (%s) to %s", header.points, header.encoding.value, name)
    return header


@dataclass
class PcdWriter:
    """Writes whole clouds to one path, creating parent directories on first use."""
    path: str
    encoding: Union[str, DataEncoding] = DataEncoding.BINARY
    shape: Optional[PointShape] = None

    def __post_init__(self) -> None:
        self.encoding = DataEncoding.parse(self.encoding)
        if self.encoding is DataEncoding.BINARY_COMPRESSED:
            raise UnsupportedEncoding("binary_compressed encoding is not supported for writing")
        self.header: Optional[Header] = None

    def write(self, cloud: PointCloud) -> Header:
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.header = write_pcd(path, cloud, self.shape, self.encoding)
        return self.header

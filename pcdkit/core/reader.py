"""Reading entry points.

Sources may be a filesystem path, the complete file as bytes, or a binary file
object. The whole file is read before decoding starts.
"""

from __future__ import annotations
import os
import pathlib
from typing import Any, BinaryIO, Callable, Dict, List, Optional, TypeVar, Union

from .codec import PointDecoder
from .header import Header
from .header_codec import parse_header, read_header_lines, split_header
from .pointcloud import PointCloud
from .schema import shape_of
from .transform import TransformOptions
from .utils import get_logger

_log = get_logger()

Source = Union[str, os.PathLike, bytes, bytearray, memoryview, BinaryIO]
ResultT = TypeVar("ResultT")


def _describe(source: Source) -> str:
    if isinstance(source, (str, os.PathLike)):
        return pathlib.Path(source).name
    if isinstance(source, (bytes, bytearray, memoryview)):
        return f"<{len(source)} bytes>"
    return getattr(source, "name", "<stream>")


def _read_bytes(source: Source) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if isinstance(source, (str, os.PathLike)):
        path = pathlib.Path(source)
        if not path.exists():
            raise FileNotFoundError(f"PCD file not found: {path}")
        with open(path, "rb") as fh:
            return fh.read()
    return source.read()


def read_header(source: Source) -> Header:
    """Parse only the header; paths and streams are read up to the DATA line."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        header, _ = split_header(bytes(source))
        return header
    if isinstance(source, (str, os.PathLike)):
        path = pathlib.Path(source)
        if not path.exists():
            raise FileNotFoundError(f"PCD file not found: {path}")
        with open(path, "rb") as fh:
            return parse_header(read_header_lines(fh))
    return parse_header(read_header_lines(source))


def read_pcd(
    source: Source,
    shape: Any,
    transform: Optional[TransformOptions] = None,
    *,
    strict: bool = False,
) -> PointCloud:
    """Decode a PCD source into a :class:`PointCloud` of the given point shape.

    ``shape`` is a :class:`~pcdkit.core.schema.PointShape` or a class decorated with
    :func:`~pcdkit.core.schema.point_shape`.
    """
    point_shape = shape_of(shape)
    header, payload = split_header(_read_bytes(source))
    decoder = PointDecoder(header, point_shape, transform, strict=strict)
    points = decoder.decode(payload)
    _log.info("Read %d points (%s) from %s", len(points), header.encoding.value, _describe(source))
    return PointCloud(points, header, point_shape)


def read_pcd_records(
    source: Source,
    constructor: Optional[Callable[[Dict[str, Union[int, float]]], ResultT]] = None,
    transform: Optional[TransformOptions] = None,
    *,
    strict: bool = False,
) -> List[ResultT]:
    """Decode every record into a name -> value dict and pass it to ``constructor``.

    Keys are the header field names (``name_<i>`` for fields with COUNT > 1). Without
    a constructor the dicts themselves are returned.
    """
    header, payload = split_header(_read_bytes(source))
    records = PointDecoder(header, None, transform, strict=strict).decode_records(payload)
    _log.info("Read %d records (%s) from %s", len(records), header.encoding.value, _describe(source))
    if constructor is None:
        return records  # type: ignore[return-value]
    return [constructor(record) for record in records]

"""pcdkit – PCD v0.7 point cloud reader/writer.

Components:
- Header model and header text codec (core.header, core.header_codec)
- Point shapes, scalar types and the field/member resolver (core.schema, core.points)
- LZF codec for binary_compressed payloads (core.lzf)
- Coordinate transform applied while decoding (core.transform)
- ASCII / binary / binary_compressed point codec (core.codec)
- PointCloud container (core.pointcloud)
- Read and write entry points (core.reader, core.exporter)

Reading supports all three DATA encodings; writing supports ascii and binary.
"""

from .core.errors import (
    PCDError,
    MissingDataField,
    MalformedHeaderField,
    UnsupportedEncoding,
    DecompressionFailure,
    IndexOutOfRange,
    MalformedRecord,
)
from .core.header import Header, FieldType, DataEncoding
from .core.header_codec import parse_header, serialize_header
from .core.schema import (
    ScalarType, ShapeMember, PointShape, FieldMapping,
    point_shape, shape_of, resolve_mappings, derive_mappings,
)
from .core.transform import CoordinateSystem, TransformOptions
from .core.pointcloud import PointCloud
from .core.points import PointXYZ, PointXYZI, PointXYZL, PointXYZRGBA, PointNormal, SHAPES
from .core.reader import read_header, read_pcd, read_pcd_records
from .core.exporter import encode_pcd, write_pcd, PcdWriter

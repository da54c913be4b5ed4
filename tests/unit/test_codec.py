import io
import struct

import numpy as np
import pytest

from pcdkit.core.codec import PointDecoder, interleave_columns
from pcdkit.core.errors import DecompressionFailure, MalformedHeaderField, MalformedRecord
from pcdkit.core.header_codec import parse_header
from pcdkit.core.lzf import compress, pack_payload
from pcdkit.core.points import PointXYZ, PointXYZL, PointXYZRGBA
from pcdkit.core.reader import read_header, read_pcd, read_pcd_records

README_PCD = (
    b"# .PCD v0.7 - Point Cloud Data file format\n"
    b"VERSION 0.7\n"
    b"FIELDS x y z\n"
    b"SIZE 4 4 4\n"
    b"TYPE F F F\n"
    b"COUNT 1 1 1\n"
    b"WIDTH 5\n"
    b"HEIGHT 1\n"
    b"VIEWPOINT 0 0 0 1 0 0 0\n"
    b"POINTS 5\n"
    b"DATA ascii\n"
    b"0 0 0\n"
    b"1 0 0\n"
    b"0 1 0\n"
    b"0 0 1\n"
    b"1 1 1\n"
)


def _pcd(fields: str, sizes: str, types: str, points: int, data: str, counts: str = "") -> bytes:
    lines = [
        "VERSION 0.7",
        f"FIELDS {fields}",
        f"SIZE {sizes}",
        f"TYPE {types}",
    ]
    if counts:
        lines.append(f"COUNT {counts}")
    lines += [f"WIDTH {points}", "HEIGHT 1", f"POINTS {points}", f"DATA {data}"]
    return ("\n".join(lines) + "\n").encode("ascii")


def _coords(cloud):
    return [(p.x, p.y, p.z) for p in cloud]


def test_readme_example() -> None:
    cloud = read_pcd(README_PCD, PointXYZ)
    assert len(cloud) == 5
    assert _coords(cloud) == [(0, 0, 0), (1, 0, 0), (0, 1, 0), (0, 0, 1), (1, 1, 1)]
    assert (cloud.width, cloud.height) == (5, 1)
    assert not cloud.is_organized


def test_read_from_path_and_stream(tmp_path) -> None:
    path = tmp_path / "readme.pcd"
    path.write_bytes(README_PCD)
    assert _coords(read_pcd(path, PointXYZ)) == _coords(read_pcd(io.BytesIO(README_PCD), PointXYZ))
    assert read_header(path).points == 5
    assert read_header(str(path)).fields == ["x", "y", "z"]


def test_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        read_pcd(tmp_path / "nope.pcd", PointXYZ)


def test_binary_with_unmapped_counted_field() -> None:
    header = _pcd("x y z pad", "4 4 4 1", "F F F U", 2, "binary", counts="1 1 1 3")
    payload = struct.pack("<fff3B", 1.5, 2.5, 3.5, 9, 9, 9) + struct.pack("<fff3B", -1.0, 0.0, 8.0, 7, 7, 7)
    cloud = read_pcd(header + payload, PointXYZ)
    assert _coords(cloud) == [(1.5, 2.5, 3.5), (-1.0, 0.0, 8.0)]


def test_binary_packed_float_rgb_keeps_bits() -> None:
    header = _pcd("x y z rgb", "4 4 4 4", "F F F F", 1, "binary")
    payload = struct.pack("<fffI", 1.0, 2.0, 3.0, 0xFF102030)
    point = read_pcd(header + payload, PointXYZRGBA)[0]
    assert point.rgba == 0xFF102030
    assert point.color == (0x10, 0x20, 0x30, 0xFF)


def test_binary_truncated_tail_is_not_an_error() -> None:
    header = _pcd("x y z", "4 4 4", "F F F", 3, "binary")
    payload = struct.pack("<6f", 1, 2, 3, 4, 5, 6) + b"\x00\x00"
    cloud = read_pcd(header + payload, PointXYZ)
    assert _coords(cloud) == [(1, 2, 3), (4, 5, 6)]


def test_binary_integer_fields_convert_to_member_type() -> None:
    header = _pcd("x y z label", "8 8 8 2", "F F F I", 1, "binary")
    payload = struct.pack("<dddh", 0.1, 0.2, 0.3, -3)
    point = read_pcd(header + payload, PointXYZL)[0]
    assert point.x == pytest.approx(0.1)
    assert point.label == 2**32 - 3  # numeric cast wraps


def _column_major(columns) -> bytes:
    return b"".join(np.asarray(c, dtype="<f4").tobytes() for c in columns)


def test_binary_compressed() -> None:
    header = _pcd("x y z", "4 4 4", "F F F", 3, "binary_compressed")
    raw = _column_major([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
    cloud = read_pcd(header + pack_payload(raw), PointXYZ)
    assert _coords(cloud) == [(1, 4, 7), (2, 5, 8), (3, 6, 9)]


def test_binary_compressed_with_counts() -> None:
    header = _pcd("x h", "4 4", "F F", 2, "binary_compressed", counts="1 2")
    raw = _column_major([[1, 2], [10, 20], [11, 21]])
    records = read_pcd_records(header + pack_payload(raw))
    assert records == [{"x": 1.0, "h_0": 10.0, "h_1": 11.0}, {"x": 2.0, "h_0": 20.0, "h_1": 21.0}]


def test_interleave_columns_layout() -> None:
    header = parse_header("FIELDS a b\nSIZE 1 2\nTYPE U U\nCOUNT 1 1\nPOINTS 2\nDATA binary\n")
    raw = bytes([1, 2]) + bytes([10, 11, 20, 21])
    assert interleave_columns(raw, header, 2) == bytes([1, 10, 11, 2, 20, 21])


def test_truncated_compressed_payload_fails() -> None:
    header = _pcd("x y z", "4 4 4", "F F F", 3, "binary_compressed")
    payload = pack_payload(_column_major([[1, 2, 3], [4, 5, 6], [7, 8, 9]]))
    with pytest.raises(DecompressionFailure):
        read_pcd(header + payload[:-3], PointXYZ)


def test_compressed_size_must_match_points() -> None:
    header = _pcd("x y z", "4 4 4", "F F F", 3, "binary_compressed")
    payload = pack_payload(_column_major([[1, 2], [4, 5], [7, 8]]))
    with pytest.raises(DecompressionFailure):
        read_pcd(header + payload, PointXYZ)


def test_oversized_declared_length_fails_before_decompressing() -> None:
    header = _pcd("x y z", "4 4 4", "F F F", 3, "binary_compressed")
    body = compress(_column_major([[1, 2, 3], [4, 5, 6], [7, 8, 9]]))
    payload = struct.pack("<ii", len(body), 0x7FFFFFF0) + body
    with pytest.raises(DecompressionFailure):
        read_pcd(header + payload, PointXYZ)


def test_negative_points_is_a_header_error() -> None:
    header = _pcd("x y z", "4 4 4", "F F F", 1, "binary").replace(b"POINTS 1", b"POINTS -1")
    with pytest.raises(MalformedHeaderField):
        read_pcd(header + struct.pack("<3f", 1, 2, 3), PointXYZ)


def test_ascii_bad_token_keeps_default() -> None:
    data = _pcd("x y z", "4 4 4", "F F F", 2, "ascii") + b"1 abc 3\n4 5 6\n"
    cloud = read_pcd(data, PointXYZ)
    assert _coords(cloud) == [(1, 0, 3), (4, 5, 6)]


def test_ascii_short_rows_are_skipped() -> None:
    data = _pcd("x y z", "4 4 4", "F F F", 3, "ascii") + b"1 2 3\n\n4 5\n7 8 9\n"
    assert _coords(read_pcd(data, PointXYZ)) == [(1, 2, 3), (7, 8, 9)]


def test_ascii_out_of_range_integer_keeps_default() -> None:
    data = _pcd("x label", "4 1", "F U", 2, "ascii") + b"1.0 300\n2.0 7\n"
    cloud = read_pcd(data, PointXYZL)
    assert [p.label for p in cloud] == [0, 7]
    assert [p.x for p in cloud] == [1.0, 2.0]


def test_ascii_strict_mode_reports_line() -> None:
    data = _pcd("x y z", "4 4 4", "F F F", 2, "ascii") + b"1 2 3\n4 5\n"
    with pytest.raises(MalformedRecord) as info:
        read_pcd(data, PointXYZ, strict=True)
    assert info.value.line == 2

    data = _pcd("x y z", "4 4 4", "F F F", 1, "ascii") + b"1 nope 3\n"
    with pytest.raises(MalformedRecord):
        read_pcd(data, PointXYZ, strict=True)


def test_records_with_constructor() -> None:
    result = read_pcd_records(README_PCD, lambda r: (r["x"], r["y"], r["z"]))
    assert result[-1] == (1.0, 1.0, 1.0)


def test_records_omit_failed_and_unreadable_values() -> None:
    data = _pcd("x w n", "4 2 4", "F F I", 2, "ascii") + b"1 2 x\n3 4 5\n"
    records = read_pcd_records(data)
    assert records == [{"x": 1.0}, {"x": 3.0, "n": 5}]


def test_decoder_without_shape_cannot_build_points() -> None:
    header = read_header(README_PCD)
    with pytest.raises(ValueError):
        PointDecoder(header).decode(b"0 0 0\n")

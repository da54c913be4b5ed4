"""Payload decoding and encoding for ASCII, binary and binary_compressed data.

Decoding works column by column: every field resolves to an ``(n, count)`` array
(strided views over the record bytes for binary data, parsed tokens for ASCII),
is transformed once, converted to the member's scalar type, and only then handed
to the per-point setters.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import DecompressionFailure, MalformedRecord, UnsupportedEncoding
from .header import DataEncoding, FieldType, Header
from .lzf import decompress, unpack_payload
from .schema import FieldMapping, PointShape, derive_mappings, header_fields, resolve_mappings
from .transform import TransformOptions, transform_column
from .utils import format_float, get_logger

if TYPE_CHECKING:
    from .pointcloud import PointCloud

_log = get_logger()

# (mapping, values of shape (n, count), validity mask or None when every value is valid)
Column = Tuple[FieldMapping, np.ndarray, Optional[np.ndarray]]


def _parse_token(token: str, mapping: FieldMapping) -> Union[int, float]:
    if mapping.field_type is FieldType.FLOAT:
        return float(token)
    value = int(token)
    if mapping.dtype is not None:
        info = np.iinfo(mapping.dtype)
        if not info.min <= value <= info.max:
            raise ValueError(f"{value} out of range for {mapping.field_type.value}{mapping.size}")
    return value


def interleave_columns(raw: bytes, header: Header, n: int) -> bytes:
    """Rebuild row-major records from field-major (column) data."""
    flat = np.frombuffer(raw, dtype=np.uint8)
    rows = np.empty((n, header.record_size), dtype=np.uint8)
    cursor = 0
    for offset, size, count in zip(header.offsets(), header.sizes, header.counts):
        for c in range(count):
            col = offset + c * size
            rows[:, col:col + size] = flat[cursor:cursor + n * size].reshape(n, size)
            cursor += n * size
    return rows.tobytes()


def _to_member_type(values: np.ndarray, mapping: FieldMapping) -> np.ndarray:
    target = mapping.member.scalar.dtype
    if values.dtype == target:
        return values
    if mapping.field_type is FieldType.FLOAT and target.kind != "f" and values.dtype.itemsize == target.itemsize:
        # packed colour stored as a float (PCL convention): keep the bits
        return np.ascontiguousarray(values).view(target)
    return values.astype(target)


class PointDecoder:
    """Decodes one payload against one header, for one point shape (or as plain records)."""

    def __init__(
        self,
        header: Header,
        shape: Optional[PointShape] = None,
        transform: Optional[TransformOptions] = None,
        strict: bool = False,
    ) -> None:
        self.header = header
        self.shape = shape
        self.transform = transform
        self.strict = strict
        self.mappings = resolve_mappings(header, shape)
        self._positions = np.cumsum([0] + list(header.counts[:-1])).tolist() if header.counts else []

    # -- public API --
    def decode(self, payload: bytes) -> List[Any]:
        if self.shape is None:
            raise ValueError("PointDecoder.decode needs a point shape; use decode_records for plain records")
        wanted = [m for m in self.mappings if m.mapped]
        n, columns = self._read_columns(payload, wanted)
        points = [self.shape.factory() for _ in range(n)]
        for mapping, values, mask in columns:
            values = _to_member_type(values, mapping)
            self._assign(points, mapping, values.tolist(), None if mask is None else mask.tolist())
        return points

    def decode_records(self, payload: bytes) -> List[Dict[str, Union[int, float]]]:
        wanted = [m for m in self.mappings if m.dtype is not None]
        skipped = [m.name for m in self.mappings if m.dtype is None]
        if skipped:
            _log.debug("No scalar reading for fields %s; left out of records", ", ".join(skipped))
        n, columns = self._read_columns(payload, wanted)
        records: List[Dict[str, Union[int, float]]] = [{} for _ in range(n)]
        for mapping, values, mask in columns:
            keys = mapping.keys()
            rows = values.tolist()
            masks = None if mask is None else mask.tolist()
            for i, (record, row) in enumerate(zip(records, rows)):
                for j, (key, value) in enumerate(zip(keys, row)):
                    if masks is None or masks[i][j]:
                        record[key] = value
        return records

    # -- internals --
    def _read_columns(self, payload: bytes, wanted: Sequence[FieldMapping]) -> Tuple[int, List[Column]]:
        encoding = self.header.encoding
        if encoding is DataEncoding.ASCII:
            n, columns = self._ascii_columns(payload, wanted)
        elif encoding is DataEncoding.BINARY:
            n, columns = self._binary_columns(payload, wanted)
        elif encoding is DataEncoding.BINARY_COMPRESSED:
            n, columns = self._binary_columns(self._decompress(payload), wanted)
        else:
            raise UnsupportedEncoding(f"Unsupported data encoding: {encoding}")
        out = [
            (mapping, transform_column(mapping.canonical, values, self.transform), mask)
            for mapping, values, mask in columns
        ]
        return n, out

    def _binary_columns(self, payload: bytes, wanted: Sequence[FieldMapping]) -> Tuple[int, List[Column]]:
        record_size = self.header.record_size
        if record_size == 0:
            return 0, []
        available = len(payload) // record_size
        n = min(self.header.points, available)
        if n < self.header.points:
            _log.warning(
                "Binary payload holds %d complete records, header declares %d; stopping early.",
                available, self.header.points,
            )
        columns: List[Column] = []
        for mapping in wanted:
            if n == 0:
                values = np.empty((0, mapping.count), dtype=mapping.dtype)
            else:
                values = np.ndarray(
                    shape=(n, mapping.count),
                    dtype=mapping.dtype,
                    buffer=payload,
                    offset=mapping.offset,
                    strides=(record_size, mapping.size),
                )
            columns.append((mapping, values, None))
        return n, columns

    def _decompress(self, payload: bytes) -> bytes:
        body, declared = unpack_payload(payload)
        n = self.header.points
        expected = n * self.header.record_size
        # checked before decompressing so the size word never drives the allocation
        if declared != expected:
            raise DecompressionFailure(
                f"payload declares {declared} decompressed bytes, {n} points need {expected}"
            )
        raw = decompress(body, declared)
        return interleave_columns(raw, self.header, n)

    def _ascii_rows(self, payload: Union[bytes, str]) -> List[List[str]]:
        text = payload if isinstance(payload, str) else payload.decode("utf-8", errors="replace")
        n_fields = len(self.header.fields)
        rows: List[List[str]] = []
        skipped = 0
        for lineno, line in enumerate(text.splitlines(), start=1):
            tokens = line.split()
            if not tokens:
                continue
            if len(tokens) < n_fields:
                if self.strict:
                    raise MalformedRecord(f"expected {n_fields} values, found {len(tokens)}", lineno)
                skipped += 1
                continue
            rows.append(tokens)
        if skipped:
            _log.warning("Skipped %d ASCII rows with fewer than %d values.", skipped, n_fields)
        return rows

    def _ascii_columns(self, payload: Union[bytes, str], wanted: Sequence[FieldMapping]) -> Tuple[int, List[Column]]:
        rows = self._ascii_rows(payload)
        n = len(rows)
        columns: List[Column] = []
        for mapping in wanted:
            start = self._positions[mapping.index]
            parsed: List[List[Union[int, float]]] = []
            valid: List[List[bool]] = []
            for row_no, tokens in enumerate(rows, start=1):
                values_row: List[Union[int, float]] = []
                valid_row: List[bool] = []
                for token in tokens[start:start + mapping.count]:
                    try:
                        values_row.append(_parse_token(token, mapping))
                        valid_row.append(True)
                    except ValueError as exc:
                        if self.strict:
                            raise MalformedRecord(f"field '{mapping.name}': {exc}", row_no) from exc
                        values_row.append(0)
                        valid_row.append(False)
                missing = mapping.count - len(values_row)
                if missing:
                    if self.strict:
                        raise MalformedRecord(f"field '{mapping.name}' is missing {missing} value(s)", row_no)
                    values_row.extend([0] * missing)
                    valid_row.extend([False] * missing)
                parsed.append(values_row)
                valid.append(valid_row)
            values = np.array(parsed, dtype=mapping.dtype).reshape(n, mapping.count)
            mask = np.array(valid, dtype=bool).reshape(n, mapping.count)
            columns.append((mapping, values, None if mask.all() else mask))
        return n, columns

    @staticmethod
    def _assign(points: List[Any], mapping: FieldMapping, rows: list, masks: Optional[list]) -> None:
        member = mapping.member
        setter = member.setter
        k = member.count
        for i, (point, row) in enumerate(zip(points, rows)):
            if masks is not None and not all(masks[i][:k]):
                continue
            setter(point, row[0] if k == 1 else row[:k])


def _zero_if_none(value: Any) -> Any:
    return 0 if value is None else value


class PointEncoder:
    """Serialises points of one shape; field layout comes from the shape alone."""

    def __init__(self, shape: PointShape) -> None:
        self.shape = shape
        self.mappings = derive_mappings(shape)

    def header_for(self, cloud: "PointCloud", encoding: Union[str, DataEncoding]) -> Header:
        encoding = DataEncoding.parse(encoding)
        count = len(cloud)
        if cloud.is_organized:
            width, height = cloud.width, cloud.height
        else:
            width, height = count, 1
        return Header(
            version="0.7",
            **header_fields(self.mappings),
            width=width,
            height=height,
            points=count,
            encoding=encoding,
            is_dense=cloud.is_dense,
            viewpoint=cloud.header.viewpoint,
        )

    def encode(self, points: Sequence[Any], encoding: Union[str, DataEncoding]) -> bytes:
        encoding = DataEncoding.parse(encoding)
        if encoding is DataEncoding.ASCII:
            return self.encode_ascii(points)
        if encoding is DataEncoding.BINARY:
            return self.encode_binary(points)
        raise UnsupportedEncoding(f"{encoding.value} encoding is not supported for writing")

    def encode_ascii(self, points: Iterable[Any]) -> bytes:
        formatters: List[Callable[[Any], str]] = []
        for m in self.mappings:
            if m.field_type is FieldType.FLOAT:
                formatters.append(lambda v, dt=m.dtype: format_float(_zero_if_none(v), dt))
            else:
                formatters.append(lambda v: str(int(_zero_if_none(v))))

        lines: List[str] = []
        for point in points:
            tokens: List[str] = []
            for m, fmt in zip(self.mappings, formatters):
                value = m.member.getter(point)
                if m.count == 1:
                    tokens.append(fmt(value))
                else:
                    tokens.extend(fmt(v) for v in value)
            lines.append(" ".join(tokens))
        if not lines:
            return b""
        return ("\n".join(lines) + "\n").encode("utf-8")

    def record_dtype(self) -> np.dtype:
        return np.dtype({
            "names": [f"f{m.index}" for m in self.mappings],
            "formats": [m.dtype if m.count == 1 else (m.dtype, (m.count,)) for m in self.mappings],
            "offsets": [m.offset for m in self.mappings],
            "itemsize": sum(m.span for m in self.mappings),
        })

    def encode_binary(self, points: Sequence[Any]) -> bytes:
        points = list(points)
        if not points:
            return b""
        records = np.zeros(len(points), dtype=self.record_dtype())
        for m in self.mappings:
            getter = m.member.getter
            if m.count == 1:
                records[f"f{m.index}"] = [_zero_if_none(getter(p)) for p in points]
            else:
                records[f"f{m.index}"] = [
                    [_zero_if_none(v) for v in getter(p)] for p in points
                ]
        return records.tobytes()

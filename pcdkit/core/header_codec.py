"""Text codec for the PCD header block.

The header is a sequence of keyword lines terminated by ``DATA``; everything after
that line is payload. :func:`split_header` locates that boundary in raw bytes so
binary payloads are never decoded as text.
"""

from __future__ import annotations
from typing import Iterable, List, Optional, Tuple, Union

from .errors import MalformedHeaderField, MissingDataField
from .header import DataEncoding, FieldType, Header
from .utils import format_float, get_logger

_log = get_logger()

HEADER_COMMENT = "# .PCD v0.7 - Point Cloud Data file format"

_DATA_VALUES = {
    "ascii": DataEncoding.ASCII,
    "binary": DataEncoding.BINARY,
    "binary_compressed": DataEncoding.BINARY_COMPRESSED,
}


def _ints(keyword: str, tokens: List[str]) -> List[int]:
    try:
        return [int(t) for t in tokens]
    except ValueError:
        raise MalformedHeaderField(f"{keyword} expects integers, got {' '.join(tokens)!r}") from None


def _single_int(keyword: str, tokens: List[str]) -> int:
    if not tokens:
        raise MalformedHeaderField(f"{keyword} is missing its value")
    return _ints(keyword, tokens[:1])[0]


def _is_data_line(line: str) -> bool:
    parts = line.split(maxsplit=1)
    return bool(parts) and parts[0].upper() == "DATA"


def parse_header(source: Union[str, Iterable[str]]) -> Header:
    """Parse header lines up to and including the DATA line."""
    lines = source.splitlines() if isinstance(source, str) else source

    version = ""
    fields: List[str] = []
    sizes: List[int] = []
    types: List[FieldType] = []
    counts: List[int] = []
    width = 0
    height = 1
    points = 0
    viewpoint: Optional[Tuple[float, ...]] = None

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        keyword, values = parts[0].upper(), parts[1:]

        if keyword == "VERSION":
            version = values[0] if values else ""
        elif keyword == "FIELDS":
            fields = values
        elif keyword == "SIZE":
            sizes = _ints(keyword, values)
        elif keyword == "TYPE":
            types = [FieldType.parse(v) for v in values]
        elif keyword == "COUNT":
            counts = _ints(keyword, values)
        elif keyword == "WIDTH":
            width = _single_int(keyword, values)
        elif keyword == "HEIGHT":
            height = _single_int(keyword, values)
        elif keyword == "VIEWPOINT":
            if len(values) != 7:
                raise MalformedHeaderField(f"VIEWPOINT expects 7 values, got {len(values)}")
            try:
                viewpoint = tuple(float(v) for v in values)
            except ValueError:
                raise MalformedHeaderField(f"VIEWPOINT expects numbers, got {' '.join(values)!r}") from None
        elif keyword == "POINTS":
            points = _single_int(keyword, values)
        elif keyword == "DATA":
            value = values[0].lower() if values else ""
            encoding = _DATA_VALUES.get(value)
            if encoding is None:
                _log.warning("Unknown DATA value %r; assuming ascii.", value)
                encoding = DataEncoding.ASCII
            return Header(
                version=version,
                fields=fields,
                sizes=sizes,
                types=types,
                counts=counts,
                width=width,
                height=height,
                points=points,
                encoding=encoding,
                viewpoint=viewpoint,
            )
        else:
            _log.debug("Ignoring unknown header directive %r", keyword)

    raise MissingDataField("Invalid PCD file: missing DATA field")


def serialize_header(header: Header) -> str:
    """Render the canonical header text, DATA line included.

    ``is_dense`` has no v0.7 keyword and is not written, so a parsed copy of the
    text always reports ``True``.
    """
    lines = [
        HEADER_COMMENT,
        f"VERSION {header.version}",
        "FIELDS " + " ".join(header.fields),
        "SIZE " + " ".join(str(s) for s in header.sizes),
        "TYPE " + " ".join(t.value for t in header.types),
        "COUNT " + " ".join(str(c) for c in header.counts),
        f"WIDTH {header.width}",
        f"HEIGHT {header.height}",
    ]
    if header.viewpoint is not None and len(header.viewpoint) >= 7:
        lines.append("VIEWPOINT " + " ".join(format_float(v) for v in header.viewpoint[:7]))
    lines.append(f"POINTS {header.points}")
    lines.append(f"DATA {header.encoding.value}")
    return "\n".join(lines) + "\n"


def split_header(data: bytes) -> Tuple[Header, bytes]:
    """Split a complete PCD byte string into its parsed header and raw payload."""
    lines: List[str] = []
    pos = 0
    total = len(data)
    while pos < total:
        end = data.find(b"\n", pos)
        nxt = total if end < 0 else end + 1
        line = data[pos:nxt].decode("utf-8", errors="replace")
        lines.append(line)
        pos = nxt
        if _is_data_line(line.strip()):
            return parse_header(lines), data[pos:]
    # no DATA line: let the parser report it (or a malformed field found first)
    return parse_header(lines), b""


def read_header_lines(stream) -> List[str]:
    """Read lines from a binary stream up to and including the DATA line."""
    lines: List[str] = []
    for raw in iter(stream.readline, b""):
        line = raw.decode("utf-8", errors="replace")
        lines.append(line)
        if _is_data_line(line.strip()):
            break
    return lines

"""LZF byte-stream codec used by ``DATA binary_compressed`` payloads.

Stream grammar, one control byte at a time:

* ``ctrl < 32``: literal run, copy the next ``ctrl + 1`` bytes.
* otherwise: back-reference of ``(ctrl >> 5) + 2`` bytes (a length field of 7 is
  extended by the next byte) starting ``((ctrl & 0x1f) << 8) + next_byte + 1``
  bytes behind the write cursor. References may overlap the bytes they produce.
"""

from __future__ import annotations
import struct
from typing import Dict, Tuple

from .errors import DecompressionFailure

MAX_LITERAL = 1 << 5
MAX_OFFSET = 1 << 13
MAX_MATCH = (1 << 8) + (1 << 3)

_SIZES = struct.Struct("<ii")


def decompress(data: bytes, expected_size: int) -> bytes:
    """Decompress ``data`` into exactly ``expected_size`` bytes."""
    src = memoryview(data)
    n = len(src)
    out = bytearray(expected_size)
    ip = 0
    op = 0
    while ip < n:
        ctrl = src[ip]
        ip += 1
        if ctrl < MAX_LITERAL:
            length = ctrl + 1
            if op + length > expected_size:
                raise DecompressionFailure(f"literal run at byte {ip - 1} overflows {expected_size} output bytes")
            if ip + length > n:
                raise DecompressionFailure("compressed stream ends inside a literal run")
            out[op:op + length] = src[ip:ip + length]
            ip += length
            op += length
            continue

        length = ctrl >> 5
        ref = op - ((ctrl & 0x1F) << 8) - 1
        if length == 7:
            if ip >= n:
                raise DecompressionFailure("compressed stream ends inside a back-reference")
            length += src[ip]
            ip += 1
        if ip >= n:
            raise DecompressionFailure("compressed stream ends inside a back-reference")
        ref -= src[ip]
        ip += 1
        length += 2
        if op + length > expected_size:
            raise DecompressionFailure(f"back-reference at byte {ip} overflows {expected_size} output bytes")
        if ref < 0:
            raise DecompressionFailure(f"back-reference at byte {ip} points before the start of output")
        if ref + length <= op:
            out[op:op + length] = out[ref:ref + length]
            op += length
        else:
            # overlapping copy, must run forward one byte at a time
            for _ in range(length):
                out[op] = out[ref]
                op += 1
                ref += 1

    if op != expected_size:
        raise DecompressionFailure(f"decompressed {op} bytes, header declares {expected_size}")
    return bytes(out)


def compress(data: bytes) -> bytes:
    """Greedy LZF compressor (liblzf stream format)."""
    src = bytes(data)
    n = len(src)
    out = bytearray()
    literals = bytearray()
    table: Dict[int, int] = {}

    def flush() -> None:
        for start in range(0, len(literals), MAX_LITERAL):
            chunk = literals[start:start + MAX_LITERAL]
            out.append(len(chunk) - 1)
            out.extend(chunk)
        literals.clear()

    ip = 0
    while ip < n - 2:
        key = (src[ip] << 16) | (src[ip + 1] << 8) | src[ip + 2]
        ref = table.get(key)
        table[key] = ip
        if ref is not None and ip - ref - 1 < MAX_OFFSET:
            off = ip - ref - 1
            limit = min(n - ip, MAX_MATCH)
            length = 3
            while length < limit and src[ref + length] == src[ip + length]:
                length += 1
            flush()
            code = length - 2
            if code < 7:
                out.append((off >> 8) + (code << 5))
            else:
                out.append((off >> 8) + (7 << 5))
                out.append(code - 7)
            out.append(off & 0xFF)
            ip += length
            continue
        literals.append(src[ip])
        ip += 1

    literals.extend(src[ip:])
    flush()
    return bytes(out)


def unpack_payload(payload: bytes) -> Tuple[bytes, int]:
    """Split a binary_compressed payload into its compressed bytes and declared size."""
    if len(payload) < _SIZES.size:
        raise DecompressionFailure("binary_compressed payload is missing its size words")
    compressed_size, decompressed_size = _SIZES.unpack_from(payload, 0)
    if compressed_size < 0 or decompressed_size < 0:
        raise DecompressionFailure("binary_compressed payload declares a negative size")
    body = payload[_SIZES.size:_SIZES.size + compressed_size]
    if len(body) != compressed_size:
        raise DecompressionFailure(
            f"binary_compressed payload holds {len(body)} of {compressed_size} compressed bytes"
        )
    return body, decompressed_size


def pack_payload(raw: bytes) -> bytes:
    """Size words plus compressed bytes; the inverse of :func:`unpack_payload`."""
    body = compress(raw)
    return _SIZES.pack(len(body), len(raw)) + body

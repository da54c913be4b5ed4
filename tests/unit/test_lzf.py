import lzf
import numpy as np
import pytest

from pcdkit.core.errors import DecompressionFailure
from pcdkit.core.lzf import compress, decompress, pack_payload, unpack_payload


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"a",
        b"ab",
        b"abcabcabcabcabcabcabc",
        b"x" * 1000,
        bytes(range(256)) * 4,
    ],
)
def test_compress_decompress_identity(data: bytes) -> None:
    assert decompress(compress(data), len(data)) == data


def test_identity_on_random_bytes() -> None:
    data = np.random.default_rng(0).integers(0, 256, 5000, dtype=np.uint8).tobytes()
    assert decompress(compress(data), len(data)) == data


def _reference_compress(data: bytes) -> bytes:
    # liblzf returns None when the output would exceed max_len
    return lzf.compress(data, len(data) * 2 + 16)


@pytest.mark.parametrize(
    "data",
    [
        b"a",
        b"abcabcabcabcabcabcabc",
        b"x" * 1000,
        b"0123456789abcdef" * 300,
        bytes(range(256)) * 4,
        np.random.default_rng(1).integers(0, 256, 5000, dtype=np.uint8).tobytes(),
        np.arange(2000, dtype="<f4").tobytes(),
    ],
    ids=["single", "short-repeat", "run", "long-pattern", "ramp", "random", "floats"],
)
def test_decompresses_liblzf_output(data: bytes) -> None:
    assert decompress(_reference_compress(data), len(data)) == data
    assert lzf.decompress(compress(data), len(data)) == data


def test_empty_stream() -> None:
    assert decompress(b"", 0) == b""
    assert compress(b"") == b""


def test_liblzf_run_has_long_back_references() -> None:
    # a run this long can only be encoded with extended-length references (9+ bytes)
    stream = _reference_compress(b"x" * 1000)
    assert len(stream) < 100
    assert decompress(stream, 1000) == b"x" * 1000


def test_repetitive_input_uses_long_back_references() -> None:
    data = b"x" * 1000
    assert len(compress(data)) < 40


def test_literal_then_back_reference() -> None:
    stream = b"\x02abc" + bytes([1 << 5, 2])
    assert decompress(stream, 6) == b"abcabc"


def test_overlapping_back_reference() -> None:
    # length field 7, extension 7 -> 16 bytes copied from one byte behind
    stream = b"\x00a" + bytes([0xE0, 7, 0])
    assert decompress(stream, 17) == b"a" * 17


def test_output_overflow() -> None:
    with pytest.raises(DecompressionFailure):
        decompress(b"\x02abc", 2)


def test_output_shorter_than_expected() -> None:
    with pytest.raises(DecompressionFailure):
        decompress(b"\x02abc", 5)


def test_truncated_literal_run() -> None:
    with pytest.raises(DecompressionFailure):
        decompress(b"\x05ab", 6)


def test_truncated_back_reference() -> None:
    with pytest.raises(DecompressionFailure):
        decompress(b"\x00a" + bytes([0x20]), 4)


def test_reference_before_start() -> None:
    with pytest.raises(DecompressionFailure):
        decompress(bytes([0x20, 5]), 10)


def test_payload_framing() -> None:
    raw = b"0123456789" * 20
    body, declared = unpack_payload(pack_payload(raw))
    assert declared == len(raw)
    assert decompress(body, declared) == raw


@pytest.mark.parametrize("payload", [b"", b"\x01\x00", pack_payload(b"abcdefgh" * 10)[:-2]])
def test_payload_framing_errors(payload: bytes) -> None:
    with pytest.raises(DecompressionFailure):
        unpack_payload(payload)

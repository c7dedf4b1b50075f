from __future__ import annotations

import zlib

import pytest

from bandcombo import compression
from bandcombo.errors import DecompressionError


def test_detects_zlib_header() -> None:
    for level in (1, 6, 9):
        assert compression.is_zlib_compressed(zlib.compress(b"abc" * 10, level))
    assert not compression.is_zlib_compressed(b"\x07\x00\x01\x00")
    assert not compression.is_zlib_compressed(b"\x78")


def test_inflate_deflate() -> None:
    payload = bytes(range(256)) * 4
    packed = compression.deflate(payload)
    assert compression.is_zlib_compressed(packed)
    assert compression.inflate(packed) == payload


def test_inflate_garbage() -> None:
    with pytest.raises(DecompressionError):
        compression.inflate(b"\x78\x9c not zlib")


def test_compression_ratio() -> None:
    assert compression.compression_ratio(1000, 250) == 75.0
    assert compression.compression_ratio(3, 2) == 33.3
    assert compression.compression_ratio(0, 10) == 0.0

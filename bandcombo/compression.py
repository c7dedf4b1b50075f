"""zlib wrapper used on both sides of the codec."""

from __future__ import annotations

import logging
import zlib

from .errors import CompressionError, DecompressionError

logger = logging.getLogger(__name__)

ZLIB_MAGIC = 0x78
# Second header byte for the four standard compression levels
ZLIB_LEVEL_BYTES = frozenset({0x01, 0x5E, 0x9C, 0xDA})


def is_zlib_compressed(data: bytes) -> bool:
    return len(data) >= 2 and data[0] == ZLIB_MAGIC and data[1] in ZLIB_LEVEL_BYTES


def inflate(data: bytes) -> bytes:
    try:
        raw = zlib.decompress(bytes(data))
    except zlib.error as e:
        raise DecompressionError(f"Zlib decompression failed: {e}") from e
    logger.debug("Inflated %d bytes to %d bytes", len(data), len(raw))
    return raw


def deflate(data: bytes, level: int = -1) -> bytes:
    try:
        return zlib.compress(bytes(data), level)
    except (zlib.error, ValueError) as e:
        raise CompressionError(f"Zlib compression failed: {e}") from e


def compression_ratio(original_size: int, compressed_size: int) -> float:
    """Space saved by compression, in percent of the uncompressed size."""
    if original_size <= 0:
        return 0.0
    return round((1 - compressed_size / original_size) * 100, 1)


__all__ = [
    "ZLIB_MAGIC",
    "compression_ratio",
    "deflate",
    "inflate",
    "is_zlib_compressed",
]

"""Wire layout of the six NV 28874 descriptor kinds.

Each DL header kind (137, 201, 333) pairs with one uplink record kind
(138, 202, 334). A DL header holds six positional slots; an uplink record
holds two ``(band, ulclass)`` pairs. Everything is little-endian.

    137  tag | 6 x (u16 band, u8 class)                      20 bytes
    201  tag | 6 x (u16 band, u8 class, u8 mimo)             26 bytes
    333  tag | 6 x (u16 band, u8 class, 8 x u8 mimo digit)   68 bytes
    138  tag | 2 x (u16 band, u8 class)              | 12 pad  20 bytes
    202  tag | 2 x (u16 band, u8 class, u8 ul mimo)  | 16 pad  26 bytes
    334  tag | 2 x (u16 band, u8 class, 8 pad)       | 44 pad  68 bytes
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, NamedTuple, Sequence

from .errors import EncodeError, UnexpectedEndOfFile

SLOT_COUNT = 6
UL_PAIR_COUNT = 2
HEADER_SIZE = 4
MIMO_DIGIT_COUNT = 8
IMPLICIT_MIMO = 2
UL_MIMO = 2

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_HEADER = struct.Struct("<HH")


class DlSlot(NamedTuple):
    band: int
    bclass: int
    ant: int


class UlPair(NamedTuple):
    band: int
    ulclass: int


EMPTY_SLOT = DlSlot(0, 0, 0)
EMPTY_PAIR = UlPair(0, 0)


@dataclass(frozen=True)
class DescriptorKind:
    """One DL header kind and the uplink record kind that follows it.

    ``mimo_width`` is 0 (no MIMO field, implicit 2), 1 (one byte) or 8
    (decimal digits, one per byte).
    """

    dl_tag: int
    ul_tag: int
    mimo_width: int
    ul_pair_pad: int
    ul_tail_pad: int
    ul_mimo_byte: bool = False

    @property
    def has_mimo_field(self) -> bool:
        return self.mimo_width > 0

    @property
    def mimo_digits(self) -> int:
        return self.mimo_width if self.mimo_width == MIMO_DIGIT_COUNT else 0

    @property
    def dl_size(self) -> int:
        return 2 + SLOT_COUNT * (3 + self.mimo_width)

    @property
    def ul_size(self) -> int:
        return 2 + UL_PAIR_COUNT * (3 + self.ul_pair_pad) + self.ul_tail_pad

    def group_size(self, members: int) -> int:
        return self.dl_size + members * self.ul_size


DESCRIPTOR_KINDS: Mapping[int, DescriptorKind] = MappingProxyType(
    {
        137: DescriptorKind(dl_tag=137, ul_tag=138, mimo_width=0, ul_pair_pad=0, ul_tail_pad=12),
        201: DescriptorKind(
            dl_tag=201, ul_tag=202, mimo_width=1, ul_pair_pad=1, ul_tail_pad=16, ul_mimo_byte=True
        ),
        333: DescriptorKind(dl_tag=333, ul_tag=334, mimo_width=8, ul_pair_pad=8, ul_tail_pad=44),
    }
)
KINDS_BY_UL_TAG: Mapping[int, DescriptorKind] = MappingProxyType(
    {kind.ul_tag: kind for kind in DESCRIPTOR_KINDS.values()}
)
DL_TAGS: tuple[int, ...] = tuple(DESCRIPTOR_KINDS)
UL_TAGS: tuple[int, ...] = tuple(KINDS_BY_UL_TAG)
ALL_TAGS: tuple[int, ...] = tuple(sorted(DL_TAGS + UL_TAGS))


def kind_for(tag: int) -> DescriptorKind:
    """Descriptor kind for a DL or UL tag."""
    kind = DESCRIPTOR_KINDS.get(tag) or KINDS_BY_UL_TAG.get(tag)
    if kind is None:
        raise KeyError(f"Unknown descriptor tag: {tag}")
    return kind


class ByteReader:
    """Little-endian cursor over an immutable buffer."""

    def __init__(self, data: bytes | bytearray | memoryview, offset: int = 0) -> None:
        self._data = memoryview(bytes(data))
        self._pos = offset

    @property
    def offset(self) -> int:
        return self._pos

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def _require(self, count: int) -> None:
        if self._pos + count > len(self._data):
            raise UnexpectedEndOfFile(self._pos, needed=self._pos + count - len(self._data))

    def u8(self) -> int:
        self._require(1)
        (value,) = _U8.unpack_from(self._data, self._pos)
        self._pos += 1
        return value

    def u16(self) -> int:
        self._require(2)
        (value,) = _U16.unpack_from(self._data, self._pos)
        self._pos += 2
        return value

    def read(self, count: int) -> bytes:
        self._require(count)
        chunk = bytes(self._data[self._pos : self._pos + count])
        self._pos += count
        return chunk

    def skip(self, count: int) -> None:
        self._require(count)
        self._pos += count


class ByteWriter:
    """Little-endian writer into a buffer allocated once at its final size."""

    def __init__(self, size: int) -> None:
        self._buf = bytearray(size)
        self._pos = 0

    @property
    def offset(self) -> int:
        return self._pos

    def _reserve(self, count: int) -> int:
        start = self._pos
        if start + count > len(self._buf):
            raise EncodeError(
                f"Write of {count} bytes at offset {start} overflows {len(self._buf)} byte buffer"
            )
        self._pos += count
        return start

    def u8(self, value: int) -> None:
        _U8.pack_into(self._buf, self._reserve(1), value & 0xFF)

    def u16(self, value: int) -> None:
        _U16.pack_into(self._buf, self._reserve(2), value & 0xFFFF)

    def write(self, chunk: bytes) -> None:
        start = self._reserve(len(chunk))
        self._buf[start : start + len(chunk)] = chunk

    def zeros(self, count: int) -> None:
        # Buffer is zero-initialised
        self._reserve(count)

    def getvalue(self) -> bytes:
        if self._pos != len(self._buf):
            raise EncodeError(f"Buffer size mismatch: wrote {self._pos} of {len(self._buf)} bytes")
        return bytes(self._buf)


def read_header(reader: ByteReader) -> tuple[int, int]:
    """Read ``(format_version, descriptor_count)``."""
    return reader.u16(), reader.u16()


def write_header(writer: ByteWriter, format_version: int, descriptor_count: int) -> None:
    writer.u16(format_version)
    writer.u16(descriptor_count)


def encode_mimo_digits(value: int) -> bytes:
    """Decimal digits of ``value`` left-aligned in eight bytes.

    Zero bytes are padding on the wire, so a 0 digit inside the number
    (10, 20, ...) does not survive decoding.
    """
    digits = str(value)
    if value < 0 or len(digits) > MIMO_DIGIT_COUNT:
        raise ValueError(f"MIMO {value} does not fit in {MIMO_DIGIT_COUNT} digits")
    return bytes(int(d) for d in digits).ljust(MIMO_DIGIT_COUNT, b"\x00")


def decode_mimo_digits(raw: bytes) -> int:
    value = 0
    for digit in raw:
        if digit != 0:
            value = value * 10 + digit
    return value


def read_dl_slots(reader: ByteReader, kind: DescriptorKind) -> list[DlSlot]:
    """Read the six slots of a DL header whose tag was already consumed."""
    slots = []
    for _ in range(SLOT_COUNT):
        band = reader.u16()
        bclass = reader.u8()
        if kind.mimo_width == 0:
            ant = IMPLICIT_MIMO if band else 0
        elif kind.mimo_width == 1:
            ant = reader.u8()
        else:
            ant = decode_mimo_digits(reader.read(MIMO_DIGIT_COUNT))
        slots.append(DlSlot(band, bclass, ant))
    return slots


def write_dl_slots(writer: ByteWriter, kind: DescriptorKind, slots: Sequence[DlSlot]) -> None:
    """Write six slots after the DL tag; missing slots are written empty."""
    if len(slots) > SLOT_COUNT:
        raise EncodeError(f"DL header holds {SLOT_COUNT} slots, got {len(slots)}")
    padded = list(slots) + [EMPTY_SLOT] * (SLOT_COUNT - len(slots))
    for slot in padded:
        writer.u16(slot.band)
        writer.u8(slot.bclass)
        if kind.mimo_width == 1:
            writer.u8(slot.ant)
        elif kind.mimo_width == MIMO_DIGIT_COUNT:
            writer.write(encode_mimo_digits(slot.ant))


def read_ul_pairs(reader: ByteReader, kind: DescriptorKind) -> list[UlPair]:
    """Read the two uplink pairs of a record whose tag was already consumed."""
    pairs = []
    for _ in range(UL_PAIR_COUNT):
        band = reader.u16()
        ulclass = reader.u8()
        reader.skip(kind.ul_pair_pad)
        pairs.append(UlPair(band, ulclass))
    reader.skip(kind.ul_tail_pad)
    return pairs


def write_ul_pairs(writer: ByteWriter, kind: DescriptorKind, pairs: Sequence[UlPair]) -> None:
    if len(pairs) > UL_PAIR_COUNT:
        raise EncodeError(f"Uplink record holds {UL_PAIR_COUNT} pairs, got {len(pairs)}")
    padded = list(pairs) + [EMPTY_PAIR] * (UL_PAIR_COUNT - len(pairs))
    for pair in padded:
        writer.u16(pair.band)
        writer.u8(pair.ulclass)
        if kind.ul_mimo_byte:
            writer.u8(UL_MIMO if pair.band else 0)
        else:
            writer.zeros(kind.ul_pair_pad)
    writer.zeros(kind.ul_tail_pad)


__all__ = [
    "ALL_TAGS",
    "DESCRIPTOR_KINDS",
    "DL_TAGS",
    "HEADER_SIZE",
    "KINDS_BY_UL_TAG",
    "SLOT_COUNT",
    "UL_TAGS",
    "ByteReader",
    "ByteWriter",
    "DescriptorKind",
    "DlSlot",
    "UlPair",
    "decode_mimo_digits",
    "encode_mimo_digits",
    "kind_for",
    "read_dl_slots",
    "read_header",
    "read_ul_pairs",
    "write_dl_slots",
    "write_header",
    "write_ul_pairs",
]

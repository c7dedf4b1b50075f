"""Shared pytest fixtures for bandcombo tests."""

from __future__ import annotations

import struct
from typing import Callable, Sequence

import pytest

Slot = tuple[int, int, int]
Pair = tuple[int, int]


def _pad_slots(slots: Sequence[Slot]) -> list[Slot]:
    return list(slots) + [(0, 0, 0)] * (6 - len(slots))


def _pad_pairs(pairs: Sequence[Pair]) -> list[Pair]:
    return list(pairs) + [(0, 0)] * (2 - len(pairs))


def dl_137(slots: Sequence[Slot]) -> bytes:
    out = struct.pack("<H", 137)
    for band, bclass, _ant in _pad_slots(slots):
        out += struct.pack("<HB", band, bclass)
    return out


def dl_201(slots: Sequence[Slot]) -> bytes:
    out = struct.pack("<H", 201)
    for band, bclass, ant in _pad_slots(slots):
        out += struct.pack("<HBB", band, bclass, ant)
    return out


def dl_333(slots: Sequence[Slot]) -> bytes:
    out = struct.pack("<H", 333)
    for band, bclass, ant in _pad_slots(slots):
        digits = bytes(int(d) for d in str(ant)) if ant else b""
        out += struct.pack("<HB", band, bclass) + digits.ljust(8, b"\x00")
    return out


def ul_138(pairs: Sequence[Pair] = ()) -> bytes:
    out = struct.pack("<H", 138)
    for band, ulclass in _pad_pairs(pairs):
        out += struct.pack("<HB", band, ulclass)
    return out + bytes(12)


def ul_202(pairs: Sequence[Pair] = ()) -> bytes:
    out = struct.pack("<H", 202)
    for band, ulclass in _pad_pairs(pairs):
        out += struct.pack("<HBB", band, ulclass, 2 if band else 0)
    return out + bytes(16)


def ul_334(pairs: Sequence[Pair] = ()) -> bytes:
    out = struct.pack("<H", 334)
    for band, ulclass in _pad_pairs(pairs):
        out += struct.pack("<HB", band, ulclass) + bytes(8)
    return out + bytes(44)


def nv_header(version: int, count: int) -> bytes:
    return struct.pack("<HH", version, count)


@pytest.fixture
def build_stream() -> Callable[..., bytes]:
    """Factory joining descriptors behind a header with a matching descriptor count."""

    def _build(*descriptors: bytes, version: int = 7, count: int | None = None) -> bytes:
        declared = len(descriptors) if count is None else count
        return nv_header(version, declared) + b"".join(descriptors)

    return _build


@pytest.fixture
def sample_stream(build_stream: Callable[..., bytes]) -> bytes:
    """Two groups: 3A-7A (137) with two uplink variants, then 3C4-7A2 (201) with one."""
    return build_stream(
        dl_137([(3, 1, 0), (7, 1, 0)]),
        ul_138([(3, 1)]),
        ul_138([(3, 1), (7, 1)]),
        dl_201([(3, 3, 4), (7, 1, 2)]),
        ul_202([(7, 1)]),
    )


@pytest.fixture
def twin_header_stream(build_stream: Callable[..., bytes]) -> bytes:
    """Two identical 3A-7A (137) headers; the second holds a repeat of the first's combo."""
    return build_stream(
        dl_137([(3, 1, 0), (7, 1, 0)]),
        ul_138([(3, 1)]),
        dl_137([(3, 1, 0), (7, 1, 0)]),
        ul_138([(3, 1)]),
        ul_138([(3, 1), (7, 1)]),
    )

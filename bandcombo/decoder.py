"""NV 28874 descriptor stream decoder.

The stream is a 4-byte header followed by tagged descriptors. A DL header
(137/201/333) opens a group and sets the six carrier slots; every uplink
record (138/202/334) after it emits one combo built from those slots plus
the record's uplink pairs. Decoding stops at the first bad descriptor and
keeps everything decoded before it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from . import compression
from .combo import Carrier, Combo, num_to_class
from .descriptors import (
    ALL_TAGS,
    DESCRIPTOR_KINDS,
    KINDS_BY_UL_TAG,
    SLOT_COUNT,
    ByteReader,
    DescriptorKind,
    DlSlot,
    UlPair,
    read_dl_slots,
    read_header,
    read_ul_pairs,
)
from .errors import DecodeError, MalformedDescriptor, UnknownDescriptorTag

logger = logging.getLogger(__name__)


@dataclass
class DescriptorGroup:
    """A DL header and the indices of the combos decoded under it."""

    desc_type: int
    slots: tuple[DlSlot, ...]
    members: list[int] = field(default_factory=list)

    @property
    def band(self) -> list[int]:
        return [s.band for s in self.slots]

    @property
    def bclass(self) -> list[int]:
        return [s.bclass for s in self.slots]

    @property
    def ant(self) -> list[int]:
        return [s.ant for s in self.slots]

    @property
    def dl_key(self) -> str:
        return "|".join(f"{s.band}:{s.bclass}:{s.ant}" for s in self.slots)

    @property
    def band_signature(self) -> str:
        return ":".join(str(b) for b in self.band)

    @property
    def carrier_slot_keys(self) -> list[str]:
        """``band:class:mimo`` for each populated slot, in slot order."""
        return [f"{s.band}:{s.bclass}:{s.ant}" for s in self.slots if s.band]

    def to_dict(self) -> dict[str, Any]:
        return {
            "descType": self.desc_type,
            "band": self.band,
            "bclass": self.bclass,
            "ant": self.ant,
            "combos": list(self.members),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DescriptorGroup:
        band = list(data.get("band", []))
        bclass = list(data.get("bclass", []))
        ant = list(data.get("ant", []))
        slots = tuple(
            DlSlot(
                band[i] if i < len(band) else 0,
                bclass[i] if i < len(bclass) else 0,
                ant[i] if i < len(ant) else 0,
            )
            for i in range(SLOT_COUNT)
        )
        return cls(
            desc_type=int(data["descType"]),
            slots=slots,
            members=list(data.get("combos", [])),
        )


@dataclass
class DecodedCombo:
    combo: Combo
    text: str
    streams: int
    has_ulca: bool
    desc_type: int
    group_index: int
    dl_key: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "streams": self.streams,
            "hasULCA": self.has_ulca,
            "descType": self.desc_type,
            "groupIdx": self.group_index,
            "dlKey": self.dl_key,
        }


def _empty_stats() -> dict[int, int]:
    return {tag: 0 for tag in ALL_TAGS}


@dataclass
class DecodeResult:
    format_version: int = 0
    declared_descriptor_count: int = 0
    combos: list[DecodedCombo] = field(default_factory=list)
    groups: list[DescriptorGroup] = field(default_factory=list)
    descriptor_stats: dict[int, int] = field(default_factory=_empty_stats)
    max_streams: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    file_size: int = 0
    original_size: int = 0
    was_compressed: bool = False
    compression_ratio: float | None = None

    @property
    def num_combos(self) -> int:
        return len(self.combos)

    @property
    def ok(self) -> bool:
        return not self.errors

    def export_lines(self) -> list[str]:
        from .textio import format_export_line

        return [format_export_line(c.text, c.streams, c.has_ulca) for c in self.combos]

    def to_text(self) -> str:
        """Plain-text report: header lines, one line per combo, totals."""
        lines = [
            f"Input file size: {self.file_size} bytes",
            f"Format version: {self.format_version}",
            f"Number of descriptors: {self.declared_descriptor_count}",
            "",
        ]
        lines.extend(self.export_lines())
        lines.append("")
        lines.append(f"Number of combos: {self.num_combos}")
        lines.append(f"Max streams per combo: {self.max_streams}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileSize": self.file_size,
            "originalSize": self.original_size,
            "wasCompressed": self.was_compressed,
            "compressionRatio": self.compression_ratio,
            "formatVersion": self.format_version,
            "numDescriptors": self.declared_descriptor_count,
            "numCombos": self.num_combos,
            "maxStreams": self.max_streams,
            "descriptorStats": {str(k): v for k, v in self.descriptor_stats.items()},
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "combos": [c.to_dict() for c in self.combos],
            "groups": [g.to_dict() for g in self.groups],
        }


def _class_letter(value: int) -> str:
    return chr(value + 0x40)


def _attach_uplinks(slots: list[DlSlot], pairs: list[UlPair]) -> list[int]:
    """Per-slot uplink class. Each pair lands on the first slot with its band."""
    ulclass = [0] * SLOT_COUNT
    for pair in pairs:
        if pair.band == 0:
            continue
        for i, slot in enumerate(slots):
            if slot.band == pair.band:
                ulclass[i] = pair.ulclass
                break
    return ulclass


def _build_combo(
    slots: list[DlSlot], ulclass: list[int], desc_type: int, group_index: int
) -> DecodedCombo | None:
    carriers = []
    parts = []
    for slot, ul in zip(slots, ulclass):
        if slot.band == 0:
            continue
        dl_letter = _class_letter(slot.bclass)
        part = f"{slot.band}{dl_letter}"
        if slot.ant:
            part += str(slot.ant)
        ul_letter = num_to_class(ul) if ul else None
        if ul_letter:
            part += ul_letter
        parts.append(part)
        carriers.append(
            Carrier(band=slot.band, dl_class=dl_letter, mimo_dl=slot.ant, ul_class=ul_letter)
        )
    if not carriers:
        return None

    combo = Combo(carriers=tuple(carriers), desc_type=desc_type, group_index=group_index)
    return DecodedCombo(
        combo=combo,
        text="-".join(parts),
        streams=combo.streams,
        has_ulca=sum(1 for u in ulclass if u > 0) > 1,
        desc_type=desc_type,
        group_index=group_index,
        dl_key="|".join(f"{s.band}:{s.bclass}:{s.ant}" for s in slots),
    )


class _StreamDecoder:
    """Tagged state machine over one buffer."""

    def __init__(self, data: bytes, result: DecodeResult) -> None:
        self.reader = ByteReader(data)
        self.result = result
        self.kind: DescriptorKind | None = None
        self.slots: list[DlSlot] = []
        self.group_index = -1

    def run(self) -> None:
        result = self.result
        result.format_version, result.declared_descriptor_count = read_header(self.reader)
        while not self.reader.at_end():
            tag_offset = self.reader.offset
            tag = self.reader.u16()
            if tag in DESCRIPTOR_KINDS:
                self._read_dl_header(DESCRIPTOR_KINDS[tag], tag_offset)
            elif tag in KINDS_BY_UL_TAG:
                self._read_ul_record(KINDS_BY_UL_TAG[tag], tag_offset)
            else:
                raise UnknownDescriptorTag(tag, tag_offset)

    def _read_dl_header(self, kind: DescriptorKind, tag_offset: int) -> None:
        self.result.descriptor_stats[kind.dl_tag] += 1
        slots = read_dl_slots(self.reader, kind)
        if not any(s.band for s in slots):
            raise MalformedDescriptor(
                "Incorrect format: no any downlink carrier in combo "
                f"(descriptor {kind.dl_tag} at offset 0x{tag_offset:x})",
                tag_offset,
            )
        for slot in slots:
            if slot.band and slot.bclass == 0:
                message = (
                    f"Band {slot.band} has DL class 0 (descriptor {kind.dl_tag} at offset "
                    f"0x{tag_offset:x}); its combos print as '@' and cannot be re-imported"
                )
                logger.warning(message)
                self.result.warnings.append(message)
        self.kind = kind
        self.slots = slots
        self.group_index = len(self.result.groups)
        self.result.groups.append(DescriptorGroup(desc_type=kind.dl_tag, slots=tuple(slots)))
        logger.debug(
            "Group %d: descriptor %d at 0x%x, bands %s",
            self.group_index,
            kind.dl_tag,
            tag_offset,
            [s.band for s in slots if s.band],
        )

    def _read_ul_record(self, kind: DescriptorKind, tag_offset: int) -> None:
        result = self.result
        result.descriptor_stats[kind.ul_tag] += 1
        pairs = read_ul_pairs(self.reader, kind)
        if self.group_index < 0:
            # Uplink record before any DL header has no carriers to attach to
            logger.debug("Uplink record %d at 0x%x outside a group", kind.ul_tag, tag_offset)
            return
        ulclass = _attach_uplinks(self.slots, pairs)
        # The combo carries the width of the record it came from
        decoded = _build_combo(self.slots, ulclass, kind.dl_tag, self.group_index)
        if decoded is None:
            return
        result.groups[self.group_index].members.append(len(result.combos))
        result.combos.append(decoded)
        result.max_streams = max(result.max_streams, decoded.streams)


def decode(data: bytes, *, auto_inflate: bool = True) -> DecodeResult:
    """Decode an NV 28874 buffer, inflating it first when it is zlib data.

    Decode failures never raise; they end the walk and are listed in
    ``DecodeResult.errors`` with everything decoded up to that point kept.
    Slots the combo text cannot express go to ``DecodeResult.warnings``.
    A zlib buffer that fails to inflate raises DecompressionError.
    """
    raw = bytes(data)
    result = DecodeResult(original_size=len(raw))
    if auto_inflate and compression.is_zlib_compressed(raw):
        raw = compression.inflate(raw)
        result.was_compressed = True
        result.compression_ratio = compression.compression_ratio(len(raw), result.original_size)
    result.file_size = len(raw)

    try:
        _StreamDecoder(raw, result).run()
    except DecodeError as e:
        logger.warning("Decode stopped after %d combos: %s", result.num_combos, e)
        result.errors.append(str(e))
    logger.debug(
        "Decoded %d combos in %d groups (%d bytes)",
        result.num_combos,
        len(result.groups),
        result.file_size,
    )
    return result


__all__ = [
    "DecodeResult",
    "DecodedCombo",
    "DescriptorGroup",
    "decode",
]

"""NV 28874 descriptor stream encoder.

Combos are gathered into groups that share one DL header; each member is
written as one uplink record after the header. Three grouping strategies
are supported:

- ``PRESERVE``: rebuild the groups of a previous decode, so an unedited
  list re-encodes to the same structure.
- ``AUTO``: pick the narrowest descriptor width per combo and group combos
  with identical DL carriers.
- ``FIXED``: like AUTO but every combo uses one descriptor width.

The output buffer is sized up front from the descriptor table and never
grows while writing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from . import compression
from .combo import Carrier, Combo, class_to_num, get_dl_key, sort_carriers
from .descriptors import (
    DESCRIPTOR_KINDS,
    HEADER_SIZE,
    IMPLICIT_MIMO,
    SLOT_COUNT,
    UL_PAIR_COUNT,
    ByteWriter,
    DlSlot,
    UlPair,
    write_dl_slots,
    write_header,
    write_ul_pairs,
)
from .errors import EncodeError
from .validation import (
    ComboLimits,
    validate_band,
    validate_class_value,
    validate_for_encoding,
    validate_int_range,
    validate_mimo,
)

if TYPE_CHECKING:
    from .decoder import DescriptorGroup

logger = logging.getLogger(__name__)

DEFAULT_FORMAT_VERSION = 7
DEFAULT_DESCRIPTOR_TYPE = 201
MIMO_BYTE_MAX = 0xFF


class GroupingStrategy(str, Enum):
    PRESERVE = "preserve"
    AUTO = "auto"
    FIXED = "fixed"


@dataclass
class EncodeOptions:
    format_version: int = DEFAULT_FORMAT_VERSION
    strategy: GroupingStrategy = GroupingStrategy.AUTO
    descriptor_type: int = DEFAULT_DESCRIPTOR_TYPE
    optimize_grouping: bool = True
    compress: bool = False
    max_ul_per_combo: int = UL_PAIR_COUNT
    limits: ComboLimits | None = None

    def __post_init__(self) -> None:
        self.strategy = GroupingStrategy(self.strategy)


@dataclass
class EncodedGroup:
    """A DL header and the combos written as uplink records after it."""

    desc_type: int
    slots: tuple[DlSlot, ...]
    members: list[Combo] = field(default_factory=list)

    @property
    def dl_key(self) -> str:
        return "|".join(f"{s.band}:{s.bclass}:{s.ant}" for s in self.slots)

    @property
    def band_signature(self) -> str:
        return ":".join(str(s.band) for s in self.slots)

    @property
    def size(self) -> int:
        return DESCRIPTOR_KINDS[self.desc_type].group_size(len(self.members))

    def to_dict(self) -> dict[str, Any]:
        return {
            "descType": self.desc_type,
            "band": [s.band for s in self.slots],
            "bclass": [s.bclass for s in self.slots],
            "ant": [s.ant for s in self.slots],
            "combos": [m.text for m in self.members],
        }


@dataclass
class EncodeResult:
    data: bytes
    raw_size: int
    descriptor_count: int
    groups: list[EncodedGroup]
    warnings: list[str] = field(default_factory=list)
    compressed: bool = False
    compression_ratio: float | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    def summary(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "rawSize": self.raw_size,
            "descriptorCount": self.descriptor_count,
            "groupCount": len(self.groups),
            "comboCount": sum(len(g.members) for g in self.groups),
            "compressed": self.compressed,
            "compressionRatio": self.compression_ratio,
            "warnings": list(self.warnings),
        }


def minimum_descriptor_type(carriers: Iterable[Carrier]) -> int:
    """Narrowest DL header that can hold every carrier's MIMO value."""
    mimos = [c.mimo_dl for c in carriers]
    if any(m > MIMO_BYTE_MAX for m in mimos):
        return 333
    if any(m not in (0, 2) for m in mimos):
        return 201
    return 137


def _require(check: tuple[bool, str], context: str) -> None:
    ok, reason = check
    if not ok:
        raise EncodeError(f"{context}: {reason}")


def _slots_for(carriers: Sequence[Carrier], desc_type: int, context: str) -> tuple[DlSlot, ...]:
    if len(carriers) > SLOT_COUNT:
        raise EncodeError(f"{context}: {len(carriers)} carriers exceed {SLOT_COUNT} slots")
    kind = DESCRIPTOR_KINDS[desc_type]
    slots = []
    for c in carriers:
        bclass = class_to_num(c.dl_class)
        _require(validate_band(c.band), context)
        _require(validate_class_value(bclass), context)
        if kind.has_mimo_field:
            _require(validate_mimo(c.mimo_dl, desc_type), context)
            ant = c.mimo_dl
        else:
            ant = IMPLICIT_MIMO
        slots.append(DlSlot(c.band, bclass, ant))
    slots.extend([DlSlot(0, 0, 0)] * (SLOT_COUNT - len(slots)))
    return tuple(slots)


def _combo_slot_keys(combo: Combo) -> list[str]:
    return [c.dl_slot_key for c in combo.carriers]


def _group_preserving(
    combos: Sequence[Combo], original_groups: Sequence[DescriptorGroup]
) -> list[EncodedGroup]:
    groups: list[EncodedGroup] = []
    used: set[int] = set()

    # Pass 1: combos still carrying their decode group, with DL carriers unchanged
    by_group: dict[int, list[int]] = {}
    for i, combo in enumerate(combos):
        if combo.group_index is not None:
            by_group.setdefault(combo.group_index, []).append(i)
    for group_index, original in enumerate(original_groups):
        expected = original.carrier_slot_keys
        members = []
        for i in by_group.get(group_index, ()):
            if _combo_slot_keys(combos[i]) == expected:
                members.append(combos[i])
                used.add(i)
        if members:
            groups.append(EncodedGroup(original.desc_type, tuple(original.slots), members))
    logger.debug("Matched %d combos to %d original groups", len(used), len(groups))

    # Pass 2: new or edited combos by positional DL key
    remaining: dict[str, list[Combo]] = {}
    for i, combo in enumerate(combos):
        if i not in used:
            remaining.setdefault(get_dl_key(combo.carriers), []).append(combo)
    for dl_key, members in remaining.items():
        target = next((g for g in groups if g.dl_key == dl_key), None)
        if target is not None:
            target.members.extend(members)
            continue
        carriers = members[0].carriers
        desc_type = minimum_descriptor_type(carriers)
        groups.append(EncodedGroup(desc_type, _slots_for(carriers, desc_type, members[0].text), members))

    groups.sort(key=lambda g: g.band_signature)
    return groups


def _group_by_dl(combos: Sequence[Combo], optimize: bool) -> list[list[Combo]]:
    if not optimize:
        return [[c] for c in combos]
    by_key: dict[str, list[Combo]] = {}
    for combo in combos:
        by_key.setdefault(get_dl_key(sort_carriers(combo.carriers)), []).append(combo)
    return [by_key[key] for key in sorted(by_key)]


def _group_by_width(
    combos: Sequence[Combo], options: EncodeOptions, warnings: list[str]
) -> list[EncodedGroup]:
    buckets: dict[int, list[Combo]] = {tag: [] for tag in DESCRIPTOR_KINDS}
    for combo in combos:
        if options.strategy == GroupingStrategy.AUTO:
            desc_type = minimum_descriptor_type(combo.carriers)
        else:
            desc_type = options.descriptor_type
            if desc_type == 137 and any(c.mimo_dl not in (0, 2) for c in combo.carriers):
                message = f'Entry "{combo.text}": descriptor 137 has no MIMO field, stored as 2'
                logger.warning(message)
                warnings.append(message)
        buckets[desc_type].append(combo)

    groups = []
    for desc_type in (137, 201, 333):
        for members in _group_by_dl(buckets[desc_type], options.optimize_grouping):
            header = sort_carriers(members[0].carriers)
            groups.append(
                EncodedGroup(desc_type, _slots_for(header, desc_type, members[0].text), members)
            )
    return groups


def _ul_pairs(combo: Combo, limit: int, warnings: list[str]) -> list[UlPair]:
    uplinks = combo.ul_carriers
    if len(uplinks) > limit:
        message = (
            f'Entry "{combo.text}" has {len(uplinks)} UL carriers, truncating to {limit}'
        )
        logger.warning(message)
        warnings.append(message)
    pairs = []
    for c in uplinks[:limit]:
        ulclass = class_to_num(c.ul_class)
        _require(validate_class_value(ulclass, "ul class"), combo.text)
        pairs.append(UlPair(c.band, ulclass))
    return pairs


def _prevalidate(combos: Sequence[Combo], limits: ComboLimits | None) -> None:
    for combo in combos:
        result = validate_for_encoding(combo.carriers, limits)
        if not result.valid:
            logger.warning(
                'Validation warnings for "%s": %s',
                combo.text,
                ", ".join(issue.code for issue in result.errors),
            )


def _serialize(
    groups: Sequence[EncodedGroup], format_version: int, ul_limit: int, warnings: list[str]
) -> tuple[bytes, int]:
    descriptor_count = sum(1 + len(g.members) for g in groups)
    _require(validate_int_range(descriptor_count, 0, 0xFFFF, "descriptor count"), "header")
    size = HEADER_SIZE + sum(g.size for g in groups)

    writer = ByteWriter(size)
    write_header(writer, format_version, descriptor_count)
    for group in groups:
        kind = DESCRIPTOR_KINDS[group.desc_type]
        writer.u16(kind.dl_tag)
        write_dl_slots(writer, kind, group.slots)
        for combo in group.members:
            writer.u16(kind.ul_tag)
            write_ul_pairs(writer, kind, _ul_pairs(combo, ul_limit, warnings))
    return writer.getvalue(), descriptor_count


def encode(
    combos: Iterable[Combo],
    options: EncodeOptions | None = None,
    *,
    original_groups: Sequence[DescriptorGroup] | None = None,
) -> EncodeResult:
    """Serialize combos into an NV 28874 buffer.

    Raises EncodeError when there is nothing to encode, when PRESERVE is
    requested without ``original_groups``, or when a combo cannot be
    represented in its descriptor.
    """
    options = options or EncodeOptions()
    combo_list = list(combos)
    if not combo_list:
        raise EncodeError("No entries to encode")
    _require(validate_int_range(options.format_version, 0, 0xFFFF, "format_version"), "header")
    if options.strategy == GroupingStrategy.FIXED and options.descriptor_type not in DESCRIPTOR_KINDS:
        raise EncodeError(
            f"Unsupported descriptor type {options.descriptor_type} (137, 201 or 333 expected)"
        )

    warnings: list[str] = []
    live = []
    for combo in combo_list:
        if not combo.carriers:
            warnings.append("Skipping entry with no carriers")
            continue
        live.append(combo)
    if not live:
        raise EncodeError("No entries to encode")

    if options.strategy == GroupingStrategy.PRESERVE:
        if not original_groups:
            raise EncodeError("No original grouping data available")
        groups = _group_preserving(live, original_groups)
    else:
        _prevalidate(live, options.limits)
        groups = _group_by_width(live, options, warnings)

    for group in groups:
        group.members.sort(key=lambda c: c.text)

    ul_limit = max(0, min(options.max_ul_per_combo, UL_PAIR_COUNT))
    raw, descriptor_count = _serialize(groups, options.format_version, ul_limit, warnings)
    logger.info(
        "Encoded %d combos in %d groups (%s, %d bytes)",
        len(live),
        len(groups),
        options.strategy.value,
        len(raw),
    )

    result = EncodeResult(
        data=raw,
        raw_size=len(raw),
        descriptor_count=descriptor_count,
        groups=groups,
        warnings=warnings,
    )
    if options.compress:
        result.data = compression.deflate(raw)
        result.compressed = True
        result.compression_ratio = compression.compression_ratio(len(raw), len(result.data))
        logger.info(
            "Compressed: %d -> %d bytes (-%.1f%%)",
            len(raw),
            len(result.data),
            result.compression_ratio,
        )
    return result


__all__ = [
    "EncodeOptions",
    "EncodeResult",
    "EncodedGroup",
    "GroupingStrategy",
    "encode",
    "minimum_descriptor_type",
]

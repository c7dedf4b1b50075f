"""Carrier and combo records plus the text notation used to edit them.

A carrier is written ``<band><dlclass>[<mimo>][<ulclass>][*]``, for example
``3A4`` (band 3, one DL carrier, 4x4 MIMO) or ``7C2A`` (band 7, three
contiguous DL carriers, 2x2 MIMO, one uplink carrier). Carriers are joined
with ``-`` to form a combo. The trailing ``*`` marks the primary cell; a
trailing letter is always an uplink class.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from .errors import ParseError

CLASS_LETTERS = "ABCDEF"
MAX_CC = 6
MAX_SLOTS = 6
DEFAULT_MIMO = 2

PCELL_MARKER = "*"
EMPTY_SLOT_KEY = "0:0:0"

_CARRIER_RE = re.compile(r"^(\d+)([A-F])(\d+)?([A-F])?(\*)?$", re.IGNORECASE)


def class_to_cc(letter: str) -> int:
    """Map a bandwidth class letter to its component-carrier count (A=1 .. F=6)."""
    if isinstance(letter, str) and len(letter) == 1:
        idx = CLASS_LETTERS.find(letter.upper())
        if idx >= 0:
            return idx + 1
    raise ValueError(f"Invalid bandwidth class: {letter!r}")


def cc_to_class(count: int) -> str:
    """Inverse of class_to_cc; counts outside 1-6 are clamped."""
    count = max(1, min(MAX_CC, int(count)))
    return CLASS_LETTERS[count - 1]


def class_to_num(letter: str | None) -> int:
    """Wire value of a class letter (A=1, B=2, ...). None or "" is 0."""
    if not letter:
        return 0
    value = ord(letter.upper()) - 0x40
    if value < 0 or value > 0xFF:
        raise ValueError(f"Invalid class letter: {letter!r}")
    return value


def num_to_class(value: int) -> str | None:
    """Class letter for a wire value; 0 means no class."""
    if value == 0:
        return None
    if value < 0 or value > 0xFF:
        raise ValueError(f"Invalid class value: {value}")
    return chr(value + 0x40)


@dataclass(frozen=True)
class Carrier:
    """One band entry of a combo.

    ``mimo_dl`` of 0 means the layer count was not present on the wire; it
    is shown without a number and counted as 2 layers.
    """

    band: int
    dl_class: str
    mimo_dl: int = DEFAULT_MIMO
    ul_class: str | None = None

    def __post_init__(self) -> None:
        if self.band < 1:
            raise ValueError(f"Band must be positive (got {self.band})")
        if len(self.dl_class) != 1:
            raise ValueError(f"Invalid DL class: {self.dl_class!r}")
        if self.mimo_dl < 0:
            raise ValueError(f"MIMO must not be negative (got {self.mimo_dl})")
        object.__setattr__(self, "dl_class", self.dl_class.upper())
        if self.ul_class == "":
            object.__setattr__(self, "ul_class", None)
        elif self.ul_class is not None:
            if len(self.ul_class) != 1:
                raise ValueError(f"Invalid UL class: {self.ul_class!r}")
            object.__setattr__(self, "ul_class", self.ul_class.upper())

    @property
    def mimo_ul(self) -> int:
        return 1 if self.ul_class else 0

    @property
    def cc_count(self) -> int:
        # Wire data may carry classes beyond F; those count as a single carrier
        idx = CLASS_LETTERS.find(self.dl_class)
        return idx + 1 if idx >= 0 else 1

    @property
    def streams(self) -> int:
        return self.cc_count * (self.mimo_dl or DEFAULT_MIMO)

    @property
    def has_uplink(self) -> bool:
        return self.ul_class is not None

    @property
    def dl_slot_key(self) -> str:
        return f"{self.band}:{class_to_num(self.dl_class)}:{self.mimo_dl}"

    def to_text(self, *, include_mimo: bool = True, include_ul: bool = True) -> str:
        text = f"{self.band}{self.dl_class}"
        if include_mimo and self.mimo_dl:
            text += str(self.mimo_dl)
        if include_ul and self.ul_class:
            text += self.ul_class
        return text


@dataclass(frozen=True)
class Combo:
    """An ordered carrier list with an optional primary cell.

    ``desc_type`` and ``group_index`` record where a decoded combo came from
    and are used to rebuild the original descriptor grouping on encode.
    """

    carriers: tuple[Carrier, ...] = field(default_factory=tuple)
    pcell_index: int | None = None
    desc_type: int | None = None
    group_index: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.carriers, tuple):
            object.__setattr__(self, "carriers", tuple(self.carriers))
        if self.pcell_index is not None and not 0 <= self.pcell_index < len(self.carriers):
            raise ValueError(
                f"pcell_index {self.pcell_index} out of range for {len(self.carriers)} carriers"
            )

    def __len__(self) -> int:
        return len(self.carriers)

    @property
    def streams(self) -> int:
        return calculate_streams(self.carriers)

    @property
    def has_ulca(self) -> bool:
        return has_ulca(self.carriers)

    @property
    def cc_count(self) -> int:
        return sum(c.cc_count for c in self.carriers)

    @property
    def text(self) -> str:
        return format_combo(self)

    @property
    def dl_key(self) -> str:
        return get_dl_key(self.carriers)

    @property
    def combo_key(self) -> str:
        return get_combo_key(self.carriers)

    @property
    def ul_carriers(self) -> list[Carrier]:
        return ul_carriers(self.carriers)

    @property
    def bands(self) -> list[int]:
        return [c.band for c in self.carriers]

    @property
    def pcell(self) -> Carrier | None:
        if self.pcell_index is None:
            return None
        return self.carriers[self.pcell_index]

    def with_carriers(
        self, carriers: Iterable[Carrier], pcell_index: int | None = None
    ) -> Combo:
        """Edited copy; the decode provenance no longer applies and is dropped."""
        return Combo(carriers=tuple(carriers), pcell_index=pcell_index)


def calculate_streams(carriers: Iterable[Carrier]) -> int:
    """Total MIMO layers: sum of CC count times DL MIMO over all carriers."""
    return sum(c.streams for c in carriers)


def ul_carriers(carriers: Iterable[Carrier]) -> list[Carrier]:
    return [c for c in carriers if c.ul_class]


def has_ulca(carriers: Iterable[Carrier]) -> bool:
    """True when more than one carrier has an uplink, whatever its class."""
    return len(ul_carriers(carriers)) > 1


def count_ul_cc(carriers: Iterable[Carrier]) -> int:
    """Uplink component carriers summed over uplink classes."""
    total = 0
    for c in ul_carriers(carriers):
        try:
            total += class_to_cc(c.ul_class or "")
        except ValueError:
            total += 1
    return total


def parse_carrier(segment: str) -> tuple[Carrier, bool]:
    """Parse one carrier segment. Returns the carrier and its PCell flag."""
    match = _CARRIER_RE.match(segment)
    if not match:
        raise ParseError(f"Invalid carrier format: {segment}", segment=segment)
    band_text, dl_class, mimo_text, ul_class, pcell = match.groups()
    band = int(band_text)
    if band < 1:
        raise ParseError(f"Invalid band in carrier: {segment}", segment=segment)
    mimo = int(mimo_text) if mimo_text else DEFAULT_MIMO
    if mimo < 1:
        raise ParseError(f"Invalid MIMO in carrier: {segment}", segment=segment)
    carrier = Carrier(band=band, dl_class=dl_class, mimo_dl=mimo, ul_class=ul_class)
    return carrier, pcell is not None


def parse_combo_string(text: str) -> Combo:
    """Parse ``3A4A-7B2*`` style notation into a Combo.

    Empty segments (``3A--7A``) are ignored. Raises ParseError naming the
    first offending segment.
    """
    carriers: list[Carrier] = []
    pcell_index: int | None = None
    for raw in text.strip().split("-"):
        segment = raw.strip()
        if not segment:
            continue
        carrier, is_pcell = parse_carrier(segment)
        if is_pcell:
            if pcell_index is not None:
                raise ParseError(
                    f"More than one primary cell marker in: {text.strip()}",
                    segment=segment,
                )
            pcell_index = len(carriers)
        carriers.append(carrier)
    return Combo(carriers=tuple(carriers), pcell_index=pcell_index)


def format_combo(
    combo: Combo,
    *,
    include_mimo: bool = True,
    include_ul: bool = True,
    include_pcell: bool = False,
) -> str:
    parts = []
    for idx, carrier in enumerate(combo.carriers):
        part = carrier.to_text(include_mimo=include_mimo, include_ul=include_ul)
        if include_pcell and combo.pcell_index == idx:
            part += PCELL_MARKER
        parts.append(part)
    return "-".join(parts)


def get_dl_key(carriers: Sequence[Carrier]) -> str:
    """Positional DL signature over six slots; uplink classes are ignored.

    Slot order matters: the same carriers in a different order give a
    different key.
    """
    slots = [c.dl_slot_key for c in carriers[:MAX_SLOTS]]
    slots.extend([EMPTY_SLOT_KEY] * (MAX_SLOTS - len(slots)))
    return "|".join(slots)


def _sort_key(carrier: Carrier) -> tuple[int, int]:
    return carrier.band, class_to_num(carrier.dl_class)


def sort_carriers(carriers: Iterable[Carrier]) -> list[Carrier]:
    """Canonical order: band ascending, then DL class."""
    return sorted(carriers, key=_sort_key)


def get_combo_key(carriers: Iterable[Carrier]) -> str:
    """Order-insensitive DL signature for set equality."""
    return "|".join(
        f"{c.band}:{class_to_num(c.dl_class)}:{c.mimo_dl or DEFAULT_MIMO}"
        for c in sort_carriers(carriers)
    )


def normalize_combo(combo: Combo) -> Combo:
    """Sort carriers into canonical order and keep the same PCell carrier.

    The PCell is followed by object identity, so duplicate carriers do not
    confuse it.
    """
    pcell = combo.pcell
    ordered = sort_carriers(combo.carriers)
    pcell_index = None
    if pcell is not None:
        pcell_index = next(i for i, c in enumerate(ordered) if c is pcell)
    return replace(combo, carriers=tuple(ordered), pcell_index=pcell_index)


def combos_equal(a: Combo, b: Combo) -> bool:
    """Same DL carriers regardless of order."""
    return a.combo_key == b.combo_key


def combos_identical(a: Combo, b: Combo) -> bool:
    """Same carriers in the same order with the same PCell and uplinks."""
    return a.pcell_index == b.pcell_index and a.carriers == b.carriers


__all__ = [
    "CLASS_LETTERS",
    "DEFAULT_MIMO",
    "MAX_CC",
    "MAX_SLOTS",
    "Carrier",
    "Combo",
    "calculate_streams",
    "cc_to_class",
    "class_to_cc",
    "class_to_num",
    "combos_equal",
    "combos_identical",
    "count_ul_cc",
    "format_combo",
    "get_combo_key",
    "get_dl_key",
    "has_ulca",
    "normalize_combo",
    "num_to_class",
    "parse_carrier",
    "parse_combo_string",
    "sort_carriers",
    "ul_carriers",
]

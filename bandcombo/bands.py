"""LTE band registry.

Static lookup of E-UTRA operating bands (3GPP TS 36.101) to duplex mode and
frequency ranges. The table is built once at import time and exposed
read-only; nothing in the package mutates it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping


class DuplexMode(str, Enum):
    """Duplex modes for LTE operating bands."""

    FDD = "FDD"
    TDD = "TDD"
    SDL = "SDL"  # Supplementary downlink (no uplink)


@dataclass(frozen=True)
class BandInfo:
    """Static information about one LTE band.

    Attributes:
        band: E-UTRA band number
        duplex_mode: FDD, TDD or SDL
        dl_low_mhz / dl_high_mhz: Downlink range in MHz
        ul_low_mhz / ul_high_mhz: Uplink range in MHz (None for SDL bands)
        name: Common name or region
    """

    band: int
    duplex_mode: DuplexMode
    dl_low_mhz: float
    dl_high_mhz: float
    ul_low_mhz: float | None
    ul_high_mhz: float | None
    name: str

    @property
    def has_uplink(self) -> bool:
        return self.duplex_mode in (DuplexMode.FDD, DuplexMode.TDD)


@dataclass(frozen=True)
class DuplexMix:
    """Duplex-mode summary of a set of bands."""

    has_fdd: bool
    has_tdd: bool
    has_sdl: bool

    @property
    def is_mixed(self) -> bool:
        return self.has_fdd and self.has_tdd


_FDD = DuplexMode.FDD
_TDD = DuplexMode.TDD
_SDL = DuplexMode.SDL

# (band, mode, dl_low, dl_high, ul_low, ul_high, name)
_BAND_ROWS: tuple[tuple[int, DuplexMode, float, float, float | None, float | None, str], ...] = (
    (1, _FDD, 2110, 2170, 1920, 1980, "IMT 2100"),
    (2, _FDD, 1930, 1990, 1850, 1910, "PCS 1900"),
    (3, _FDD, 1805, 1880, 1710, 1785, "DCS 1800"),
    (4, _FDD, 2110, 2155, 1710, 1755, "AWS-1"),
    (5, _FDD, 869, 894, 824, 849, "CLR 850"),
    (6, _FDD, 875, 885, 830, 840, "UMTS 800"),
    (7, _FDD, 2620, 2690, 2500, 2570, "IMT-E 2600"),
    (8, _FDD, 925, 960, 880, 915, "E-GSM 900"),
    (9, _FDD, 1844.9, 1879.9, 1749.9, 1784.9, "Japan 1800"),
    (10, _FDD, 2110, 2170, 1710, 1770, "AWS-1+"),
    (11, _FDD, 1475.9, 1495.9, 1427.9, 1447.9, "Japan 1500 Lower"),
    (12, _FDD, 729, 746, 699, 716, "US 700 Lower A/B/C"),
    (13, _FDD, 746, 756, 777, 787, "US 700 Upper C"),
    (14, _FDD, 758, 768, 788, 798, "US 700 Public Safety"),
    (17, _FDD, 734, 746, 704, 716, "US 700 Lower B/C"),
    (18, _FDD, 860, 875, 815, 830, "Japan 800 Lower"),
    (19, _FDD, 875, 890, 830, 845, "Japan 800 Upper"),
    (20, _FDD, 791, 821, 832, 862, "EU 800 DD"),
    (21, _FDD, 1495.9, 1510.9, 1447.9, 1462.9, "Japan 1500 Upper"),
    (22, _FDD, 3510, 3590, 3410, 3490, "3500"),
    (23, _FDD, 2180, 2200, 2000, 2020, "S-band"),
    (24, _FDD, 1525, 1559, 1626.5, 1660.5, "L-band"),
    (25, _FDD, 1930, 1995, 1850, 1915, "PCS 1900+"),
    (26, _FDD, 859, 894, 814, 849, "CLR 850+"),
    (27, _FDD, 852, 869, 807, 824, "US 800 SMR"),
    (28, _FDD, 758, 803, 703, 748, "APT 700"),
    (29, _SDL, 717, 728, None, None, "US 700 Lower D/E"),
    (30, _FDD, 2350, 2360, 2305, 2315, "WCS 2300"),
    (31, _FDD, 462.5, 467.5, 452.5, 457.5, "450 PMR"),
    (32, _SDL, 1452, 1496, None, None, "L-band SDL"),
    (33, _TDD, 1900, 1920, 1900, 1920, "TDD 1900"),
    (34, _TDD, 2010, 2025, 2010, 2025, "TDD 2000"),
    (35, _TDD, 1850, 1910, 1850, 1910, "TDD PCS Lower"),
    (36, _TDD, 1930, 1990, 1930, 1990, "TDD PCS Upper"),
    (37, _TDD, 1910, 1930, 1910, 1930, "TDD PCS Center"),
    (38, _TDD, 2570, 2620, 2570, 2620, "TDD 2600"),
    (39, _TDD, 1880, 1920, 1880, 1920, "TDD 1900+"),
    (40, _TDD, 2300, 2400, 2300, 2400, "TDD 2300"),
    (41, _TDD, 2496, 2690, 2496, 2690, "TDD 2500"),
    (42, _TDD, 3400, 3600, 3400, 3600, "TDD 3500"),
    (43, _TDD, 3600, 3800, 3600, 3800, "TDD 3700"),
    (44, _TDD, 703, 803, 703, 803, "TDD 700 APT"),
    (45, _TDD, 1447, 1467, 1447, 1467, "TDD 1500"),
    (46, _TDD, 5150, 5925, 5150, 5925, "LAA"),
    (47, _TDD, 5855, 5925, 5855, 5925, "V2X"),
    (48, _TDD, 3550, 3700, 3550, 3700, "CBRS"),
    (49, _TDD, 3550, 3700, 3550, 3700, "TDD 3600"),
    (50, _TDD, 1432, 1517, 1432, 1517, "TDD 1500+"),
    (51, _TDD, 1427, 1432, 1427, 1432, "TDD 1400 L-band"),
    (52, _TDD, 3300, 3400, 3300, 3400, "TDD 3300"),
    (53, _TDD, 2483.5, 2495, 2483.5, 2495, "TDD 2400"),
    (65, _FDD, 2110, 2200, 1920, 2010, "Extended IMT 2100"),
    (66, _FDD, 2110, 2200, 1710, 1780, "AWS-3"),
    (67, _SDL, 738, 758, None, None, "EU 700 SDL"),
    (68, _FDD, 753, 783, 698, 728, "ME 700"),
    (69, _SDL, 2570, 2620, None, None, "EU 2600 SDL"),
    (70, _FDD, 1995, 2020, 1695, 1710, "AWS-4"),
    (71, _FDD, 617, 652, 663, 698, "US 600"),
    (72, _FDD, 461, 466, 451, 456, "PMR 450"),
    (73, _FDD, 460, 465, 450, 455, "PMR 450+"),
    (74, _FDD, 1475, 1518, 1427, 1470, "L-band"),
    (75, _SDL, 1432, 1517, None, None, "L-band SDL"),
    (76, _SDL, 1427, 1432, None, None, "L-band SDL"),
    (85, _FDD, 728, 746, 698, 716, "US 700"),
    (87, _FDD, 420, 425, 410, 415, "410 MHz"),
    (88, _FDD, 422, 427, 412, 417, "410+ MHz"),
)

BANDS: Mapping[int, BandInfo] = MappingProxyType(
    {
        row[0]: BandInfo(
            band=row[0],
            duplex_mode=row[1],
            dl_low_mhz=float(row[2]),
            dl_high_mhz=float(row[3]),
            ul_low_mhz=None if row[4] is None else float(row[4]),
            ul_high_mhz=None if row[5] is None else float(row[5]),
            name=row[6],
        )
        for row in _BAND_ROWS
    }
)

# Bands offered for quick selection (most widely deployed)
COMMON_BANDS: tuple[int, ...] = (
    1, 2, 3, 4, 5, 7, 8, 12, 13, 17, 20, 25, 26, 28, 29, 30,
    38, 39, 40, 41, 42, 43, 46, 48, 66, 71,
)


def lookup(band: int) -> BandInfo | None:
    """Return band information, or None for an unknown band."""
    return BANDS.get(band)


def duplex_mode_of(band: int) -> DuplexMode | None:
    """Return the duplex mode of a band, or None when the band is unknown."""
    info = BANDS.get(band)
    return info.duplex_mode if info else None


def is_fdd(band: int) -> bool:
    return duplex_mode_of(band) == DuplexMode.FDD


def is_tdd(band: int) -> bool:
    return duplex_mode_of(band) == DuplexMode.TDD


def is_sdl(band: int) -> bool:
    return duplex_mode_of(band) == DuplexMode.SDL


def has_uplink(band: int) -> bool:
    """True for FDD/TDD bands; False for SDL and unknown bands."""
    info = BANDS.get(band)
    return info.has_uplink if info else False


def bands_by_duplex_mode(mode: DuplexMode) -> list[int]:
    """Sorted band numbers for a duplex mode."""
    return sorted(b for b, info in BANDS.items() if info.duplex_mode == mode)


def common_bands() -> list[BandInfo]:
    return [BANDS[b] for b in COMMON_BANDS if b in BANDS]


def analyze_mix(bands: Iterable[int]) -> DuplexMix:
    """Summarize duplex modes present in a band set (unknown bands ignored)."""
    modes = {duplex_mode_of(b) for b in bands}
    return DuplexMix(
        has_fdd=DuplexMode.FDD in modes,
        has_tdd=DuplexMode.TDD in modes,
        has_sdl=DuplexMode.SDL in modes,
    )


__all__ = [
    "BANDS",
    "COMMON_BANDS",
    "BandInfo",
    "DuplexMix",
    "DuplexMode",
    "analyze_mix",
    "bands_by_duplex_mode",
    "common_bands",
    "duplex_mode_of",
    "has_uplink",
    "is_fdd",
    "is_sdl",
    "is_tdd",
    "lookup",
]

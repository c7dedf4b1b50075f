"""Combo list text files and the decode-to-encode hand-off.

A combo list holds one ``<combo> <streams>[*]`` line per combo, the same
lines the decoder's text report contains. The report's header and summary
lines are skipped on input, so a report can be fed straight back in.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from .combo import Combo, parse_combo_string
from .encoder import EncodeOptions, GroupingStrategy
from .errors import ParseError

if TYPE_CHECKING:
    from .decoder import DecodeResult

logger = logging.getLogger(__name__)

REPORT_PREFIXES = ("Input file", "Format", "Number", "Max streams")

_LINE_RE = re.compile(r"^([A-Z0-9*-]+)\s+(\d+)(\*)?", re.IGNORECASE)


@dataclass
class ComboEntry:
    combo: Combo
    streams: int
    has_ulca: bool

    @property
    def text(self) -> str:
        return self.combo.text

    def to_line(self) -> str:
        return format_export_line(self.text, self.streams, self.has_ulca)


@dataclass(frozen=True)
class SkippedLine:
    line_number: int
    line: str
    reason: str


@dataclass
class ComboFileResult:
    entries: list[ComboEntry] = field(default_factory=list)
    skipped: list[SkippedLine] = field(default_factory=list)

    @property
    def combos(self) -> list[Combo]:
        return [e.combo for e in self.entries]


def format_export_line(combo_text: str, streams: int, has_ulca: bool) -> str:
    return f"{combo_text} {streams}{'*' if has_ulca else ' '}"


def parse_combo_file(text: str, *, recalculate: bool = False) -> ComboFileResult:
    """Read a combo list, skipping lines that do not parse.

    With ``recalculate`` the stream count and UL CA flag come from the
    carriers; otherwise the values written in the file are kept.
    """
    result = ComboFileResult()
    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(REPORT_PREFIXES):
            continue
        match = _LINE_RE.match(line)
        if not match:
            result.skipped.append(SkippedLine(line_number, line, "not a combo line"))
            continue
        combo_text, streams_text, ulca_flag = match.groups()
        try:
            combo = parse_combo_string(combo_text)
        except ParseError as e:
            logger.warning("Skipping invalid line %d: %s (%s)", line_number, line, e)
            result.skipped.append(SkippedLine(line_number, line, str(e)))
            continue
        if not combo.carriers:
            result.skipped.append(SkippedLine(line_number, line, "no carriers"))
            continue
        if recalculate:
            streams, has_ulca = combo.streams, combo.has_ulca
        else:
            streams, has_ulca = int(streams_text), ulca_flag == "*"
        result.entries.append(ComboEntry(combo, streams, has_ulca))
    return result


def format_combo_file(entries: Iterable[ComboEntry]) -> str:
    return "\n".join(entry.to_line() for entry in entries)


def decode_result_entries(result: DecodeResult, *, recalculate: bool = False) -> list[ComboEntry]:
    """Entries for re-encoding, keeping each combo's group provenance."""
    entries = []
    for decoded in result.combos:
        if recalculate:
            streams, has_ulca = decoded.combo.streams, decoded.combo.has_ulca
        else:
            streams, has_ulca = decoded.streams, decoded.has_ulca
        entries.append(ComboEntry(decoded.combo, streams, has_ulca))
    return entries


def suggest_encode_options(result: DecodeResult) -> EncodeOptions:
    """Encoder settings that reproduce a decoded file's layout."""
    stats = result.descriptor_stats
    has_137 = stats.get(137, 0) > 0 or stats.get(138, 0) > 0
    has_201 = stats.get(201, 0) > 0 or stats.get(202, 0) > 0
    has_333 = stats.get(333, 0) > 0 or stats.get(334, 0) > 0

    if has_333 or (has_137 and has_201):
        strategy, descriptor_type = GroupingStrategy.AUTO, 201
    elif has_201:
        strategy, descriptor_type = GroupingStrategy.FIXED, 201
    else:
        strategy, descriptor_type = GroupingStrategy.FIXED, 137

    if result.groups:
        strategy = GroupingStrategy.PRESERVE
    return EncodeOptions(
        format_version=result.format_version,
        strategy=strategy,
        descriptor_type=descriptor_type,
        compress=result.was_compressed,
    )


__all__ = [
    "ComboEntry",
    "ComboFileResult",
    "SkippedLine",
    "decode_result_entries",
    "format_combo_file",
    "format_export_line",
    "parse_combo_file",
    "suggest_encode_options",
]

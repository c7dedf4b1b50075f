"""Tests for carrier/combo records and the combo text notation."""

from __future__ import annotations

import pytest

from bandcombo.combo import (
    Carrier,
    Combo,
    calculate_streams,
    cc_to_class,
    class_to_cc,
    class_to_num,
    combos_equal,
    combos_identical,
    count_ul_cc,
    format_combo,
    get_combo_key,
    get_dl_key,
    has_ulca,
    normalize_combo,
    num_to_class,
    parse_carrier,
    parse_combo_string,
    sort_carriers,
)
from bandcombo.errors import ParseError


class TestClassMapping:
    def test_class_to_cc_and_back(self) -> None:
        for n in range(1, 7):
            assert class_to_cc(cc_to_class(n)) == n
        for letter in "ABCDEF":
            assert cc_to_class(class_to_cc(letter)) == letter

    def test_class_to_cc_lowercase(self) -> None:
        assert class_to_cc("c") == 3

    def test_class_to_cc_rejects_unknown(self) -> None:
        with pytest.raises(ValueError):
            class_to_cc("G")
        with pytest.raises(ValueError):
            class_to_cc("")

    def test_cc_to_class_clamps(self) -> None:
        assert cc_to_class(0) == "A"
        assert cc_to_class(9) == "F"

    def test_class_num_round_trip(self) -> None:
        for letter in "ABCDEF":
            assert num_to_class(class_to_num(letter)) == letter
        assert class_to_num("A") == 1
        assert class_to_num(None) == 0
        assert num_to_class(0) is None


class TestCarrier:
    def test_defaults(self) -> None:
        c = Carrier(3, "a")
        assert c.dl_class == "A"
        assert c.mimo_dl == 2
        assert c.ul_class is None
        assert c.mimo_ul == 0

    def test_streams_use_cc_count(self) -> None:
        assert Carrier(3, "C", 4).streams == 12

    def test_zero_mimo_counts_as_two_layers(self) -> None:
        assert Carrier(3, "A", 0).streams == 2
        assert Carrier(3, "A", 0).to_text() == "3A"

    def test_empty_ul_class_is_none(self) -> None:
        assert Carrier(3, "A", 2, "").ul_class is None

    def test_rejects_band_zero(self) -> None:
        with pytest.raises(ValueError):
            Carrier(0, "A")

    def test_dl_slot_key(self) -> None:
        assert Carrier(7, "B", 4, "A").dl_slot_key == "7:2:4"


class TestParse:
    def test_parse_carrier_full(self) -> None:
        carrier, is_pcell = parse_carrier("7C4A*")
        assert carrier == Carrier(7, "C", 4, "A")
        assert is_pcell

    def test_parse_carrier_defaults_mimo(self) -> None:
        carrier, is_pcell = parse_carrier("3A")
        assert carrier.mimo_dl == 2
        assert not is_pcell

    def test_trailing_letter_is_uplink(self) -> None:
        carrier, _ = parse_carrier("3AA")
        assert carrier.ul_class == "A"
        assert carrier.mimo_dl == 2

    @pytest.mark.parametrize("segment", ["", "A3", "3", "3G", "0A", "3A0", "3A4A*x"])
    def test_parse_carrier_invalid(self, segment: str) -> None:
        with pytest.raises(ParseError):
            parse_carrier(segment)

    def test_parse_combo_string(self) -> None:
        combo = parse_combo_string("3C4-7A2A*-20A")
        assert [c.band for c in combo.carriers] == [3, 7, 20]
        assert combo.pcell_index == 1
        assert combo.streams == 12 + 2 + 2

    def test_empty_segments_are_skipped(self) -> None:
        combo = parse_combo_string(" 3A--7A- ")
        assert combo.bands == [3, 7]

    def test_multiple_pcell_markers(self) -> None:
        with pytest.raises(ParseError):
            parse_combo_string("3A*-7A*")

    def test_error_names_segment(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_combo_string("3A-XYZ")
        assert exc_info.value.segment == "XYZ"

    def test_format_round_trip(self) -> None:
        for text in ("3A", "3C4A-7A2", "1A4A-3A2-7C2A-20A2"):
            assert format_combo(parse_combo_string(text)) == text

    def test_format_options(self) -> None:
        combo = parse_combo_string("3A4A*-7A")
        assert format_combo(combo, include_mimo=False) == "3AA-7A"
        assert format_combo(combo, include_ul=False) == "3A4-7A2"
        assert format_combo(combo, include_pcell=True) == "3A4A*-7A2"


class TestStreamsAndUplink:
    def test_streams_example(self) -> None:
        carriers = [Carrier(3, "C", 2), Carrier(7, "A", 4)]
        assert calculate_streams(carriers) == 10

    def test_has_ulca(self) -> None:
        assert not has_ulca([Carrier(3, "A", 2, "A"), Carrier(7, "A")])
        assert has_ulca([Carrier(3, "A", 2, "A"), Carrier(7, "A", 2, "A")])

    def test_count_ul_cc(self) -> None:
        assert count_ul_cc([Carrier(3, "C", 2, "B"), Carrier(7, "A", 2, "A")]) == 3


class TestKeys:
    def test_dl_key_ignores_uplink(self) -> None:
        a = parse_combo_string("3A4A-7A")
        b = parse_combo_string("3A4-7AA")
        assert get_dl_key(a.carriers) == get_dl_key(b.carriers)

    def test_dl_key_is_positional(self) -> None:
        a = parse_combo_string("3A-7A")
        b = parse_combo_string("7A-3A")
        assert a.dl_key != b.dl_key
        assert a.dl_key == "3:1:2|7:1:2|0:0:0|0:0:0|0:0:0|0:0:0"

    def test_combo_key_ignores_order(self) -> None:
        a = parse_combo_string("3A-7A")
        b = parse_combo_string("7A-3A")
        assert get_combo_key(a.carriers) == get_combo_key(b.carriers)
        assert combos_equal(a, b)
        assert not combos_identical(a, b)

    def test_sort_carriers(self) -> None:
        combo = parse_combo_string("7A-3C-3A")
        assert [c.to_text() for c in sort_carriers(combo.carriers)] == ["3A2", "3C2", "7A2"]


class TestNormalize:
    def test_pcell_follows_carrier(self) -> None:
        combo = parse_combo_string("7A-3A*")
        normalized = normalize_combo(combo)
        assert normalized.bands == [3, 7]
        assert normalized.pcell_index == 0
        assert normalized.pcell == Carrier(3, "A")

    def test_pcell_with_duplicate_carriers(self) -> None:
        combo = parse_combo_string("66A-2A-66A*")
        normalized = normalize_combo(combo)
        assert normalized.bands == [2, 66, 66]
        assert normalized.pcell is combo.pcell

    def test_without_pcell(self) -> None:
        assert normalize_combo(parse_combo_string("7A-3A")).pcell_index is None


class TestComboRecord:
    def test_pcell_index_range_checked(self) -> None:
        with pytest.raises(ValueError):
            Combo(carriers=(Carrier(3, "A"),), pcell_index=1)

    def test_list_converted_to_tuple(self) -> None:
        combo = Combo(carriers=[Carrier(3, "A")])  # type: ignore[arg-type]
        assert isinstance(combo.carriers, tuple)
        assert len(combo) == 1

    def test_with_carriers_drops_provenance(self) -> None:
        combo = Combo(carriers=(Carrier(3, "A"),), desc_type=201, group_index=4)
        edited = combo.with_carriers([Carrier(3, "A"), Carrier(7, "A")])
        assert edited.group_index is None
        assert edited.desc_type is None
        assert edited.text == "3A2-7A2"

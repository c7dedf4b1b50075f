"""Tests for the bandcombo command line."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

from bandcombo.cli import build_parser, main
from bandcombo.decoder import decode
from conftest import dl_201, ul_202


@pytest.fixture
def config_path(tmp_path: Path) -> str:
    # Missing file: defaults only, no overlay from the working directory
    return str(tmp_path / "bandcombo.yaml")


def _run(config_path: str, *argv: str) -> int:
    return main(["--config", config_path, "--log-level", "warning", *argv])


class TestDecodeCommand:
    def test_prints_report(
        self, tmp_path: Path, config_path: str, sample_stream: bytes, capsys: pytest.CaptureFixture[str]
    ) -> None:
        nv = tmp_path / "00028874"
        nv.write_bytes(sample_stream)
        assert _run(config_path, "decode", str(nv)) == 0
        out = capsys.readouterr().out
        assert "3C4-7A2A 14" in out
        assert "Number of combos: 3" in out

    def test_json_to_file(self, tmp_path: Path, config_path: str, sample_stream: bytes) -> None:
        nv = tmp_path / "00028874"
        nv.write_bytes(sample_stream)
        out = tmp_path / "decoded.json"
        assert _run(config_path, "decode", str(nv), "--json", "-o", str(out)) == 0
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["numCombos"] == 3

    def test_truncated_file_exits_nonzero(
        self, tmp_path: Path, config_path: str, sample_stream: bytes, capsys: pytest.CaptureFixture[str]
    ) -> None:
        nv = tmp_path / "00028874"
        nv.write_bytes(sample_stream[:-4])
        assert _run(config_path, "decode", str(nv)) == 1
        assert "Unexpected end of file" in capsys.readouterr().err

    def test_missing_file(self, tmp_path: Path, config_path: str) -> None:
        assert _run(config_path, "decode", str(tmp_path / "absent")) == 1


class TestEncodeCommand:
    def test_encode_list(self, tmp_path: Path, config_path: str, sample_stream: bytes) -> None:
        listing = tmp_path / "combos.txt"
        listing.write_text("3A2A-7A2 4\n3A2A-7A2A 4*\n3C4-7A2A 14\n", encoding="utf-8")
        out = tmp_path / "out.bin"
        assert _run(config_path, "encode", str(listing), "-o", str(out)) == 0
        assert out.read_bytes() == sample_stream

    def test_preserve_from_original(
        self, tmp_path: Path, config_path: str, sample_stream: bytes
    ) -> None:
        original = tmp_path / "original.bin"
        original.write_bytes(sample_stream)
        report = tmp_path / "report.txt"
        assert _run(config_path, "decode", str(original), "-o", str(report)) == 0

        out = tmp_path / "out.bin"
        args = ["encode", str(report), "-o", str(out), "--preserve-from", str(original)]
        assert _run(config_path, *args) == 0
        assert out.read_bytes() == sample_stream

    def test_preserve_keeps_identical_header_groups(
        self, tmp_path: Path, config_path: str, twin_header_stream: bytes
    ) -> None:
        original = tmp_path / "original.bin"
        original.write_bytes(twin_header_stream)
        report = tmp_path / "report.txt"
        assert _run(config_path, "decode", str(original), "-o", str(report)) == 0

        out = tmp_path / "out.bin"
        args = ["encode", str(report), "-o", str(out), "--preserve-from", str(original)]
        assert _run(config_path, *args) == 0
        assert [len(g.members) for g in decode(out.read_bytes()).groups] == [1, 2]
        assert out.read_bytes() == twin_header_stream

    def test_preserve_keeps_wire_mimo(
        self, tmp_path: Path, config_path: str, build_stream: Callable[..., bytes]
    ) -> None:
        stream = build_stream(dl_201([(3, 1, 0), (7, 1, 4)]), ul_202([(3, 1)]))
        original = tmp_path / "original.bin"
        original.write_bytes(stream)
        report = tmp_path / "report.txt"
        assert _run(config_path, "decode", str(original), "-o", str(report)) == 0
        assert "3AA-7A4 6" in report.read_text(encoding="utf-8")

        out = tmp_path / "out.bin"
        args = ["encode", str(report), "-o", str(out), "--preserve-from", str(original)]
        assert _run(config_path, *args) == 0
        assert out.read_bytes() == stream

    def test_preserve_regroups_edited_lines(
        self, tmp_path: Path, config_path: str, twin_header_stream: bytes
    ) -> None:
        original = tmp_path / "original.bin"
        original.write_bytes(twin_header_stream)
        listing = tmp_path / "combos.txt"
        listing.write_text("3A2A-7A2 4\n3A2A-7A2A 4*\n3A2A-20A2 4\n", encoding="utf-8")

        out = tmp_path / "out.bin"
        args = ["encode", str(listing), "-o", str(out), "--preserve-from", str(original)]
        assert _run(config_path, *args) == 0
        result = decode(out.read_bytes())
        assert result.num_combos == 3
        assert [len(g.members) for g in result.groups] == [1, 1, 1]

    def test_fixed_compressed(self, tmp_path: Path, config_path: str) -> None:
        listing = tmp_path / "combos.txt"
        listing.write_text("3A4A-7A 6\n", encoding="utf-8")
        out = tmp_path / "out.bin"
        args = ["encode", str(listing), "-o", str(out), "--strategy", "fixed"]
        args += ["--descriptor-type", "333", "--compress", "--format-version", "9"]
        assert _run(config_path, *args) == 0
        result = decode(out.read_bytes())
        assert result.was_compressed
        assert result.format_version == 9
        assert result.descriptor_stats[333] == 1

    def test_empty_list_fails(
        self, tmp_path: Path, config_path: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        listing = tmp_path / "combos.txt"
        listing.write_text("not a combo\n", encoding="utf-8")
        assert _run(config_path, "encode", str(listing), "-o", str(tmp_path / "o.bin")) == 1
        err = capsys.readouterr().err
        assert "skipped line 1" in err
        assert "No entries to encode" in err


class TestValidateCommand:
    def test_valid(self, config_path: str, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(config_path, "validate", "3C2-7A4") == 0
        assert "3C2-7A4 10: OK" in capsys.readouterr().out

    def test_invalid(self, config_path: str, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(config_path, "validate", "3A", "3A-38A") == 1
        assert "FDD_TDD_MIX" in capsys.readouterr().out

    def test_json(self, config_path: str, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(config_path, "validate", "--json", "3A-7A") == 0
        data = json.loads(capsys.readouterr().out)
        assert data[0]["combo"] == "3A2-7A2"
        assert data[0]["valid"] is True

    def test_unknown_profile(self, config_path: str) -> None:
        assert _run(config_path, "validate", "--profile", "nope", "3A") == 1

    def test_parse_error(self, config_path: str) -> None:
        assert _run(config_path, "validate", "3Q") == 1


def test_bands_and_profiles(config_path: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(config_path, "bands", "--common") == 0
    assert "SDL" in capsys.readouterr().out
    assert _run(config_path, "profiles") == 0
    assert "mifi-8800l" in capsys.readouterr().out


def test_serve_arguments() -> None:
    args = build_parser().parse_args(["serve", "--bind", "0.0.0.0", "--port", "9001"])
    assert args.command == "serve"
    assert args.port == 9001


def test_command_required() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


class TestConfigErrors:
    def test_unknown_strategy(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "bandcombo.yaml"
        path.write_text("encoder:\n  strategy: best\n", encoding="utf-8")
        assert _run(str(path), "bands") == 1
        assert "error: cannot load config" in capsys.readouterr().err

    def test_malformed_yaml(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "bandcombo.yaml"
        path.write_text("server: [8088\n", encoding="utf-8")
        assert _run(str(path), "bands") == 1
        assert "error: cannot load config" in capsys.readouterr().err

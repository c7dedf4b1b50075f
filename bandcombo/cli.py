"""Command line front end: decode, encode, validate, bands and serve."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections import deque
from dataclasses import replace
from pathlib import Path
from typing import Optional

import yaml

from . import __version__, bands
from .combo import DEFAULT_MIMO, Combo, parse_combo_string
from .config import AppConfig, default_config_path, load_config
from .decoder import DecodeResult, decode
from .encoder import GroupingStrategy, encode
from .errors import BandComboError
from .textio import parse_combo_file
from .utils import configure_logging, log_level_name
from .validation import resolve_profile, validate_combo

logger = logging.getLogger(__name__)

CONFIG_ENV = "BANDCOMBO_CONFIG"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bandcombo",
        description="Decode, edit and re-encode LTE CA combo lists (NV item 28874)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=os.environ.get(CONFIG_ENV, default_config_path()),
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override the configured log level (e.g., debug, info, warning)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_decode = sub.add_parser("decode", help="Decode an NV 28874 file into a combo report")
    p_decode.add_argument("input", type=str, help="Binary NV file (raw or zlib)")
    p_decode.add_argument("-o", "--output", type=str, default=None, help="Write report here")
    p_decode.add_argument("--json", action="store_true", help="Emit the full result as JSON")

    p_encode = sub.add_parser("encode", help="Encode a combo list into an NV 28874 file")
    p_encode.add_argument("input", type=str, help="Combo list, one '<combo> <streams>' per line")
    p_encode.add_argument("-o", "--output", type=str, required=True, help="Binary output file")
    p_encode.add_argument(
        "--strategy",
        choices=[s.value for s in GroupingStrategy],
        default=None,
        help="Grouping strategy (default from config)",
    )
    p_encode.add_argument(
        "--descriptor-type",
        type=int,
        choices=[137, 201, 333],
        default=None,
        help="Descriptor type for the fixed strategy",
    )
    p_encode.add_argument("--no-optimize", action="store_true", help="One header per combo")
    p_encode.add_argument("--compress", action="store_true", help="zlib-compress the output")
    p_encode.add_argument("--format-version", type=int, default=None)
    p_encode.add_argument(
        "--recalculate", action="store_true", help="Recompute streams and UL CA flags"
    )
    p_encode.add_argument(
        "--preserve-from",
        type=str,
        default=None,
        help="Original NV file whose descriptor grouping should be kept",
    )

    p_validate = sub.add_parser("validate", help="Check combo strings against the CA rules")
    p_validate.add_argument("combos", nargs="+", help="Combo strings, e.g. 3C4-7A2A")
    p_validate.add_argument("--profile", type=str, default=None, help="Device profile key")
    p_validate.add_argument("--json", action="store_true")

    p_bands = sub.add_parser("bands", help="List known LTE bands")
    p_bands.add_argument("--common", action="store_true", help="Only commonly deployed bands")

    sub.add_parser("profiles", help="List device profiles")

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--bind", type=str, default=None, help="Override bind address")
    p_serve.add_argument("--port", type=int, default=None, help="Override port")

    return parser


def _write_text(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        logger.info("Wrote %s", output)
    else:
        print(text)


def cmd_decode(args: argparse.Namespace, cfg: AppConfig) -> int:
    data = Path(args.input).read_bytes()
    result = decode(data)
    if args.json:
        _write_text(json.dumps(result.to_dict(), indent=2), args.output)
    else:
        _write_text(result.to_text(), args.output)
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    for err in result.errors:
        print(f"error: {err}", file=sys.stderr)
    return 0 if result.ok else 1


def _match_key(combo: Combo) -> str:
    # A slot without a layer count on the wire prints bare but parses back as the default
    return "-".join(
        f"{c.band}{c.dl_class}{c.mimo_dl or DEFAULT_MIMO}{c.ul_class or ''}" for c in combo.carriers
    )


def _preserve_groups(combos: list[Combo], original: DecodeResult) -> list[Combo]:
    """Swap each listed combo for its counterpart from the original decode.

    Identical combos are handed out in decode order, so duplicates spread
    over several same-header groups keep their membership. The decoded
    combo carries the wire MIMO and group index. Unmatched combos stay as
    parsed and are regrouped by the encoder.
    """
    pending: dict[str, deque[Combo]] = {}
    for decoded in original.combos:
        pending.setdefault(_match_key(decoded.combo), deque()).append(decoded.combo)
    matched = []
    for combo in combos:
        queue = pending.get(_match_key(combo))
        if queue:
            matched.append(replace(queue.popleft(), pcell_index=combo.pcell_index))
        else:
            matched.append(combo)
    return matched


def cmd_encode(args: argparse.Namespace, cfg: AppConfig) -> int:
    listing = parse_combo_file(
        Path(args.input).read_text(encoding="utf-8"), recalculate=args.recalculate
    )
    for skipped in listing.skipped:
        print(f"skipped line {skipped.line_number}: {skipped.reason}", file=sys.stderr)

    options = cfg.encoder.to_options(cfg.limits.to_limits())
    if args.strategy is not None:
        options.strategy = GroupingStrategy(args.strategy)
    if args.descriptor_type is not None:
        options.descriptor_type = args.descriptor_type
    if args.no_optimize:
        options.optimize_grouping = False
    if args.compress:
        options.compress = True
    if args.format_version is not None:
        options.format_version = args.format_version

    combos = listing.combos
    original_groups = None
    if args.preserve_from:
        original = decode(Path(args.preserve_from).read_bytes())
        combos = _preserve_groups(combos, original)
        original_groups = original.groups
        if args.strategy is None:
            options.strategy = GroupingStrategy.PRESERVE

    result = encode(combos, options, original_groups=original_groups)
    Path(args.output).write_bytes(result.data)
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(
        f"Wrote {result.size} bytes: {len(combos)} combos, "
        f"{result.descriptor_count} descriptors"
    )
    return 0


def cmd_validate(args: argparse.Namespace, cfg: AppConfig) -> int:
    profile = resolve_profile(args.profile, cfg.profiles)
    limits = cfg.limits.to_limits()
    all_valid = True
    reports = []
    for text in args.combos:
        combo = parse_combo_string(text)
        result = validate_combo(
            combo.carriers, limits, pcell_index=combo.pcell_index, profile=profile
        )
        all_valid = all_valid and result.valid
        if args.json:
            reports.append({"combo": combo.text, **result.to_dict()})
        else:
            status = "OK" if result.valid else "INVALID"
            print(f"{combo.text} {combo.streams}: {status}")
            for issue in result.errors + result.warnings:
                print(f"  {issue.severity}: {issue.code}: {issue.message}")
    if args.json:
        print(json.dumps(reports, indent=2))
    return 0 if all_valid else 1


def cmd_bands(args: argparse.Namespace, cfg: AppConfig) -> int:
    infos = bands.common_bands() if args.common else sorted(bands.BANDS.values(), key=lambda b: b.band)
    for info in infos:
        print(f"{info.band:>3} {info.duplex_mode.value:<3} {info.name}")
    return 0


def cmd_profiles(args: argparse.Namespace, cfg: AppConfig) -> int:
    for key, profile in cfg.all_profiles().items():
        print(
            f"{key}: {profile.name} (DL CC {profile.max_dl_cc}, "
            f"UL SCell {profile.max_ul_scell}, total UL {profile.max_total_ul})"
        )
    return 0


def cmd_serve(args: argparse.Namespace, cfg: AppConfig) -> int:
    import uvicorn

    from .app import create_app

    if args.bind is not None:
        cfg.server.bind_address = args.bind
    if args.port is not None:
        cfg.server.port = args.port
    app = create_app(cfg, config_path=args.config)
    uvicorn.run(
        app,
        host=cfg.server.bind_address,
        port=cfg.server.port,
        log_level=log_level_name(cfg.logging.level),
    )
    return 0


COMMANDS = {
    "decode": cmd_decode,
    "encode": cmd_encode,
    "validate": cmd_validate,
    "bands": cmd_bands,
    "profiles": cmd_profiles,
    "serve": cmd_serve,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        print(f"error: cannot load config {args.config}: {e}", file=sys.stderr)
        return 1
    if args.log_level is not None:
        cfg.logging.level = args.log_level
    if args.command != "serve":
        configure_logging(cfg.logging.level, cfg.logging.file)

    try:
        return COMMANDS[args.command](args, cfg)
    except (BandComboError, OSError, KeyError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1

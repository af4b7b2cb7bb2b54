#!/usr/bin/env python3
"""Validate structural metadata against the release files it describes.

Writes the reports as JSON to stdout; with --text, writes the
human-readable rendering instead. Exit status is 1 when any check reports
findings or fails.

Usage:
    python3 scripts/validate_metadata.py --metadata data/metadata.json \
      --cache ~/.cache/ucdmeta [--version 15.0.0] [--text]
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import orjson

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ucdmeta.errors import UcdMetaError  # noqa: E402
from ucdmeta.ucd import UcdData  # noqa: E402
from ucdmeta.validator import format_report  # noqa: E402

log = logging.getLogger("validate_metadata")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.split("\n", 1)[0])
    parser.add_argument("--metadata", required=True, type=Path, help="Metadata JSON document")
    parser.add_argument("--cache", type=Path, default=None, help="Root of unpacked release trees")
    parser.add_argument("--settings", type=Path, default=None, help="Settings JSON document")
    parser.add_argument("--version", default=None, help="Validate only this version")
    parser.add_argument("--text", action="store_true", help="Print the text report instead of JSON")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if not args.metadata.exists():
        log.error("metadata not found: %s", args.metadata)
        return 2
    try:
        data = UcdData.from_paths(args.metadata, cache_root=args.cache, settings_path=args.settings)
        reports = data.validate(args.version)
    except UcdMetaError as exc:
        log.error("%s", exc)
        return 2

    if args.text:
        for report in reports:
            sys.stdout.write("\n".join(format_report(report)) + "\n")
    else:
        payload = [r.to_dict() for r in reports]
        sys.stdout.buffer.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        sys.stdout.buffer.write(b"\n")

    failed = [r.version_name for r in reports if not r.ok]
    log.info("validated %d version(s), %d with findings", len(reports), len(failed))
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())

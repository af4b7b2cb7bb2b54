#!/usr/bin/env python3
"""Export the recorded property values of one version to DuckDB.

Usage:
    python3 scripts/build_value_index.py --metadata data/metadata.json \
      --cache ~/.cache/ucdmeta --version 15.0.0 --db values.duckdb \
      [--property Script --property Age]
"""
from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import orjson

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ucdmeta.errors import UcdMetaError  # noqa: E402
from ucdmeta.ucd import UcdData  # noqa: E402
from ucdmeta.value_index import build_value_index  # noqa: E402

log = logging.getLogger("build_value_index")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.split("\n", 1)[0])
    parser.add_argument("--metadata", required=True, type=Path, help="Metadata JSON document")
    parser.add_argument("--cache", type=Path, default=None, help="Root of unpacked release trees")
    parser.add_argument("--settings", type=Path, default=None, help="Settings JSON document")
    parser.add_argument("--version", required=True, help="Version to export")
    parser.add_argument("--db", required=True, type=Path, help="DuckDB file to create")
    parser.add_argument(
        "--property", action="append", default=None,
        help="Property to export (repeatable; default: every indexed property)",
    )
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

    start = time.time()
    try:
        data = UcdData.from_paths(args.metadata, cache_root=args.cache, settings_path=args.settings)
        rows = build_value_index(args.db, data.version_manager(args.version), args.property)
    except UcdMetaError as exc:
        log.error("%s", exc)
        return 2

    summary = {
        "db": str(args.db),
        "version_name": args.version,
        "rows": rows,
        "elapsed_s": round(time.time() - start, 3),
    }
    sys.stdout.buffer.write(orjson.dumps(summary, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

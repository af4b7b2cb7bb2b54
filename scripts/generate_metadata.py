#!/usr/bin/env python3
"""Draft metadata for a new version from a reviewed one.

Copies the current metadata document to --output with a new entry for
--to, inferred from the blocks of --from. The draft needs human review;
run validate_metadata.py on it.

Usage:
    python3 scripts/generate_metadata.py --metadata data/metadata.json \
      --cache ~/.cache/ucdmeta --from 15.0.0 --to 15.1.0 --output draft.json
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
from ucdmeta.version import version_weight  # noqa: E402

log = logging.getLogger("generate_metadata")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.split("\n", 1)[0])
    parser.add_argument("--metadata", required=True, type=Path, help="Metadata JSON document")
    parser.add_argument("--cache", type=Path, default=None, help="Root of unpacked release trees")
    parser.add_argument("--settings", type=Path, default=None, help="Settings JSON document")
    parser.add_argument("--from", dest="source", required=True, help="Version with reviewed metadata")
    parser.add_argument("--to", dest="target", required=True, help="Version to draft")
    parser.add_argument("--output", required=True, type=Path, help="Path of the new document")
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

    try:
        data = UcdData.from_paths(args.metadata, cache_root=args.cache, settings_path=args.settings)
        document = data.generate_metadata(args.output, args.source, args.target)
    except UcdMetaError as exc:
        log.error("%s", exc)
        return 2

    weight = version_weight(args.target)
    entry = next(
        e for e in document["version_metadatas"]
        if version_weight(str(e["version_name"])) == weight
    )
    summary = {
        "output": str(args.output),
        "version_name": entry["version_name"],
        "file_count": len(entry["file_formats"]),
        "block_count": sum(len(f["blocks"]) for f in entry["file_formats"]),
    }
    sys.stdout.buffer.write(orjson.dumps(summary, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")
    log.info("wrote draft for %s to %s", args.target, args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""Query property values of one version.

Exactly one of --codepoint, --value or --diff-version selects the query:
the value(s) at a codepoint, the codepoints holding a value, or the
codepoints whose value changed between --version and --diff-version.

Usage:
    python3 scripts/query_property.py --metadata data/metadata.json \
      --cache ~/.cache/ucdmeta --version 15.0.0 --property Script --codepoint 0041
    python3 scripts/query_property.py ... --property Script --value Latn
    python3 scripts/query_property.py ... --property Age --diff-version 15.1.0
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import orjson

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ucdmeta.errors import UcdMetaError  # noqa: E402
from ucdmeta.query import format_codepoint, format_range, to_codepoint  # noqa: E402
from ucdmeta.ucd import UcdData  # noqa: E402

log = logging.getLogger("query_property")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.split("\n", 1)[0])
    parser.add_argument("--metadata", required=True, type=Path, help="Metadata JSON document")
    parser.add_argument("--cache", type=Path, default=None, help="Root of unpacked release trees")
    parser.add_argument("--settings", type=Path, default=None, help="Settings JSON document")
    parser.add_argument("--version", default=None, help="Version to query (default: latest with metadata)")
    parser.add_argument("--property", required=True, help="Property name or alias")
    query = parser.add_mutually_exclusive_group(required=True)
    query.add_argument("--codepoint", help="Character, or hex codepoint such as 0041 or U+0041")
    query.add_argument("--value", help="Property value or any of its aliases")
    query.add_argument("--diff-version", help="Second version to compare against")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def run_query(data: UcdData, args: argparse.Namespace) -> dict[str, Any]:
    version_name = args.version
    if version_name is None:
        managers = data.version_managers()
        if not managers:
            raise UcdMetaError("no version has metadata")
        version_name = managers[-1].version_name
    vm = data.version_manager(version_name)
    result: dict[str, Any] = {"version_name": vm.version_name, "property": args.property}

    if args.codepoint is not None:
        cp = to_codepoint(args.codepoint)
        result["codepoint"] = format_codepoint(cp)
        result["values"] = vm.values_of(args.property, cp)
    elif args.value is not None:
        found = vm.codepoints_of(args.property, args.value)
        result["value"] = args.value
        result["aliases"] = vm.value_aliases(args.property, args.value)
        result["ranges"] = [format_range(r) for r in found]
    else:
        changed = data.unicode_manager().value_changed_codepoints(
            args.property, vm.version_name, args.diff_version,
        )
        result["diff_version"] = args.diff_version
        result["changed"] = [format_range(r) for r in changed]
    return result


def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        data = UcdData.from_paths(args.metadata, cache_root=args.cache, settings_path=args.settings)
        result = run_query(data, args)
    except UcdMetaError as exc:
        log.error("%s", exc)
        return 2

    sys.stdout.buffer.write(orjson.dumps(result, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

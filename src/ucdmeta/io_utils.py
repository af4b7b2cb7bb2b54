"""I/O utilities for JSON and raw text files.

All JSON goes through orjson. Metadata documents are written pretty-printed
with stable key order so hand edits diff cleanly.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def dumps_json(obj: Any, *, pretty: bool = True, sort_keys: bool = False) -> bytes:
    """Encode an object as JSON bytes."""
    opts = 0
    if pretty:
        opts |= orjson.OPT_INDENT_2
    if sort_keys:
        opts |= orjson.OPT_SORT_KEYS
    return orjson.dumps(obj, option=opts)


def save_json(obj: Any, path: Path, *, pretty: bool = True, sort_keys: bool = False) -> None:
    """Save an object as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps_json(obj, pretty=pretty, sort_keys=sort_keys))


def decode_lines(raw: bytes) -> list[str]:
    """Split raw UCD file bytes into lines without line terminators.

    UCD files are UTF-8; a BOM on the first line is dropped.
    """
    text = raw.decode("utf-8", errors="replace")
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line.rstrip("\r") for line in lines]

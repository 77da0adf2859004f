"""
CLI File Helpers

Reading donation files and writing JSON results.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


class CLIInputError(Exception):
    """Input file missing or not in the expected shape."""


def load_json_file(path: str | Path) -> Any:
    path = Path(path)
    if not path.exists():
        raise CLIInputError(f"File not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise CLIInputError(f"Invalid JSON in {path}: {e}") from e


def load_donations(path: str | Path) -> list[dict[str, Any]]:
    """
    Load donation rows from a JSON file.

    Accepts a top-level array or an object with a "donations" array.
    Order in the file is leaf order.
    """
    data = load_json_file(path)
    if isinstance(data, dict):
        data = data.get("donations")
    if not isinstance(data, list):
        raise CLIInputError(f"{path}: expected a JSON array of donations")
    for i, row in enumerate(data):
        if not isinstance(row, dict):
            raise CLIInputError(f"{path}: donation at position {i} is not an object")
    return data


def write_json(data: Any, out: str | Path | None) -> None:
    """Write JSON to a file, or to stdout when out is None."""
    text = json.dumps(data, indent=2, default=str)
    if out is None:
        print(text)
        return
    path = Path(out)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")

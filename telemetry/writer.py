"""Training telemetry written as JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Mapping


def write_history(path: str | Path, records: Iterable[Mapping[str, object]]) -> int:
    """Write one JSON object per epoch record; returns the number written."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with target.open("w", encoding="utf-8") as handle:
        for record in records:
            handle.write(json.dumps(record, default=_json_fallback))
            handle.write("\n")
            count += 1
    return count


def write_summary(path: str | Path, summary: Mapping[str, object]) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(summary, handle, indent=2, sort_keys=True, default=_json_fallback)
        handle.write("\n")


def _json_fallback(obj):
    if hasattr(obj, "tolist"):
        # numpy scalars and arrays
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"object of type {type(obj)!r} is not JSON serializable")

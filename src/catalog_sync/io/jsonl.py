# catalog_sync/io/jsonl.py

"""Low-level JSONL read/write helpers for the file-backed catalog."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def iter_jsonl_objects(
    path: Path,
    *,
    log_errors: bool = True,
) -> Iterator[dict[str, Any]]:
    """Iterate over JSON objects, one per line. Skips empty lines and invalid JSON."""
    if not path.exists():
        return

    with path.open("r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as exc:
                if log_errors:
                    logger.warning(
                        "Skipping invalid JSON line %d in %s: %s",
                        line_number,
                        path,
                        exc,
                    )
                continue
            if isinstance(obj, dict):
                yield obj


def read_records(
    path: Path,
    parse: Callable[[dict[str, Any]], T],
) -> list[T]:
    """Parse every object of a JSONL file, skipping rows with missing or bad fields."""
    records: list[T] = []
    for obj in iter_jsonl_objects(path):
        try:
            records.append(parse(obj))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed record in %s: %r (%s)", path, obj, exc)
    return records


def write_jsonl(path: Path, objects: Iterable[dict[str, Any]]) -> None:
    """Write objects to a JSONL file, one per line, replacing it atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        for obj in objects:
            f.write(json.dumps(obj, ensure_ascii=False) + "\n")
    tmp_path.replace(path)

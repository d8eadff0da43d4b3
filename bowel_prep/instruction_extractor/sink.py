"""CSV output for instruction records."""
from __future__ import annotations

import csv
from collections.abc import Iterable
from pathlib import Path

from .scanner import RECORD_FIELDS, InstructionRecord


def format_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def record_row(record: InstructionRecord) -> dict[str, str]:
    data = record.to_dict()
    return {field: format_cell(data[field]) for field in RECORD_FIELDS}


def write_records_csv(path: Path, records: Iterable[InstructionRecord]) -> int:
    """Write ``records`` to ``path`` and return the row count.

    Rows go to a temporary sibling first so a failed run never leaves a
    truncated table at ``path``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    count = 0
    try:
        with tmp_path.open("w", encoding="utf-8", newline="") as fh:
            writer = csv.DictWriter(fh, fieldnames=list(RECORD_FIELDS))
            writer.writeheader()
            for record in records:
                writer.writerow(record_row(record))
                count += 1
        tmp_path.replace(path)
    finally:
        tmp_path.unlink(missing_ok=True)
    return count

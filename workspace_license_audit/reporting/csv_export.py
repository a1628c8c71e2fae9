"""
CSV report sink — Writes the audit report to a local CSV file.
"""

from __future__ import annotations

import csv
import re
from pathlib import Path
from typing import Any, Sequence


def _slugify(title: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", title).strip("_").lower()
    return slug or "report"


class CsvSink:
    """TabularSink that writes ``<output_dir>/<title>_<run_id>.csv``."""

    def __init__(self, output_dir: Path, run_id: str):
        self.output_dir = Path(output_dir)
        self.run_id = run_id

    async def create(self, title: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{_slugify(title)}_{self.run_id}.csv"
        with open(path, "w", newline="", encoding="utf-8-sig"):
            pass
        return path

    async def append_header(self, handle: Path, columns: Sequence[str]) -> None:
        with open(handle, "a", newline="", encoding="utf-8-sig") as fh:
            csv.writer(fh).writerow(columns)

    async def write_rows(self, handle: Path, rows: Sequence[Sequence[Any]]) -> None:
        with open(handle, "a", newline="", encoding="utf-8-sig") as fh:
            csv.writer(fh).writerows(rows)

    def locator_of(self, handle: Path) -> str:
        return str(handle.resolve())

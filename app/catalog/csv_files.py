# app/catalog/csv_files.py

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

TITLE_MARKER = "# TITLE:"

IPN_HEADERS = ("ipn", "part_number", "pn")


@dataclass
class CsvTable:
    headers: list[str]
    rows: list[list[str]] = field(default_factory=list)
    title: str = ""


def read_csv_table(path: Path) -> Optional[CsvTable]:
    """
    Read a delimited file into headers + rows.

    - An optional first line "# TITLE: <text>" is stripped and kept as the title.
    - Leading whitespace after delimiters is ignored.
    - Returns None if the file is unreadable or has no header row.
    """
    try:
        content = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as exc:
        logger.warning("Could not read CSV file %s: %s", path, exc)
        return None

    title = ""
    first_line, _, rest = content.partition("\n")
    if first_line.startswith(TITLE_MARKER):
        title = first_line[len(TITLE_MARKER):].strip()
        content = rest

    try:
        records = [
            row
            for row in csv.reader(io.StringIO(content), skipinitialspace=True)
            if row
        ]
    except csv.Error as exc:
        logger.warning("Malformed CSV file %s: %s", path, exc)
        return None

    if not records:
        logger.debug("Empty CSV file: %s", path)
        return None

    return CsvTable(headers=records[0], rows=records[1:], title=title)


def find_column(headers: list[str], names: Iterable[str]) -> int:
    """Index of the first header matching any of `names` (case-insensitive), or -1."""
    wanted = {n.lower() for n in names}
    for i, h in enumerate(headers):
        if h.strip().lower() in wanted:
            return i
    return -1


def cell(row: list[str], idx: int) -> str:
    if 0 <= idx < len(row):
        return row[idx].strip()
    return ""

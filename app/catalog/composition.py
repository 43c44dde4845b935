# app/catalog/composition.py

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from app.catalog.csv_files import IPN_HEADERS, cell, find_column, read_csv_table
from app.catalog.ipn import is_assembly_ipn

logger = logging.getLogger(__name__)

BOM_SUFFIX = ".csv"

QTY_HEADERS = ("qty", "quantity")
REF_HEADERS = ("ref", "reference", "designator", "ref_des")
DESC_HEADERS = ("description", "desc")

DEFAULT_QTY = 1.0


@dataclass(frozen=True)
class BomLine:
    """One row of an assembly's composition file."""

    ipn: str
    qty: float = DEFAULT_QTY
    ref: str = ""
    description: str = ""


def parse_quantity(raw: str) -> float:
    """
    Parse a BOM quantity cell.

    Blank, non-numeric, negative or non-finite values fall back to 1.
    """
    text = (raw or "").strip()
    if not text:
        return DEFAULT_QTY
    try:
        qty = float(text)
    except ValueError:
        logger.debug("Non-numeric BOM quantity %r; using %s", raw, DEFAULT_QTY)
        return DEFAULT_QTY
    if not math.isfinite(qty) or qty < 0:
        logger.debug("Out-of-range BOM quantity %r; using %s", raw, DEFAULT_QTY)
        return DEFAULT_QTY
    return qty


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError as exc:
        logger.debug("Cannot stat %s: %s", path, exc)
        return False


def _is_safe_ipn(ipn: str) -> bool:
    """IPNs become file names; anything that could leave the directory is refused."""
    return not any(token in ipn for token in ("/", "\\", ".."))


def _subdirectories(parts_dir: Path) -> list[Path]:
    try:
        return sorted(p for p in parts_dir.iterdir() if p.is_dir())
    except OSError:
        return []


def find_bom_file(parts_dir: Optional[Path], ipn: str) -> Optional[Path]:
    """
    Locate the composition file for `ipn`.

    Looks for "<ipn>.csv" directly under `parts_dir`, then in each immediate
    subdirectory (sorted by name). Returns None when there is none, or when
    `ipn` contains a path separator or "..".
    """
    if parts_dir is None or not ipn:
        return None
    if not _is_safe_ipn(ipn):
        logger.warning("Refusing composition lookup for unsafe IPN %r", ipn)
        return None

    candidates = [parts_dir / f"{ipn}{BOM_SUFFIX}"]
    candidates.extend(d / f"{ipn}{BOM_SUFFIX}" for d in _subdirectories(parts_dir))

    for path in candidates:
        if _is_file(path):
            return path
    return None


def read_bom_lines(path: Path) -> list[BomLine]:
    """
    Parse a composition file into ordered BOM lines.

    Column roles are found by case-insensitive header match; the IPN column
    defaults to the first column. Rows without an IPN are skipped.
    """
    table = read_csv_table(path)
    if table is None:
        return []

    headers = table.headers
    ipn_idx = find_column(headers, IPN_HEADERS)
    if ipn_idx == -1:
        ipn_idx = 0
    qty_idx = find_column(headers, QTY_HEADERS)
    ref_idx = find_column(headers, REF_HEADERS)
    desc_idx = find_column(headers, DESC_HEADERS)

    lines: list[BomLine] = []
    for row in table.rows:
        child_ipn = cell(row, ipn_idx)
        if not child_ipn:
            continue
        lines.append(
            BomLine(
                ipn=child_ipn,
                qty=parse_quantity(cell(row, qty_idx)) if qty_idx >= 0 else DEFAULT_QTY,
                ref=cell(row, ref_idx),
                description=cell(row, desc_idx),
            )
        )
    return lines


def load_bom(parts_dir: Optional[Path], ipn: str) -> list[BomLine]:
    """Composition lines for `ipn`, or an empty list when no file exists."""
    path = find_bom_file(parts_dir, ipn)
    if path is None:
        logger.debug("No composition file for %s under %s", ipn, parts_dir)
        return []
    return read_bom_lines(path)


def iter_bom_files(parts_dir: Optional[Path]) -> Iterator[tuple[str, Path]]:
    """
    Yield (assembly_ipn, path) for every composition file under `parts_dir`.

    Only the root and its immediate subdirectories are scanned, matching the
    lookup rule in find_bom_file; when an IPN has several files, only the one
    find_bom_file would pick is yielded.
    """
    if parts_dir is None or not parts_dir.is_dir():
        return

    seen: set[str] = set()
    for directory in [parts_dir, *_subdirectories(parts_dir)]:
        try:
            paths = sorted(directory.glob(f"*{BOM_SUFFIX}"))
        except OSError as exc:
            logger.warning("Skipping unreadable directory %s: %s", directory, exc)
            continue
        for path in paths:
            if path.stem in seen or not _is_file(path):
                continue
            if is_assembly_ipn(path.stem):
                seen.add(path.stem)
                yield path.stem, path

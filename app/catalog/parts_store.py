# app/catalog/parts_store.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from app.catalog.csv_files import IPN_HEADERS, CsvTable, find_column, read_csv_table
from app.catalog.ipn import is_assembly_ipn

logger = logging.getLogger(__name__)

CATEGORY_FIELD = "_category"

DESCRIPTION_HEADERS = ("description", "desc")
MANUFACTURER_HEADERS = ("manufacturer", "mfr")
MPN_HEADERS = ("mpn", "mfr_pn", "manufacturer_pn")


@dataclass
class Part:
    """
    One catalog row.

    The well-known columns are lifted into attributes; `fields` keeps every
    raw column (plus "_category") so nothing from the CSV is lost.
    """

    ipn: str
    category: str
    description: str = ""
    manufacturer: str = ""
    mpn: str = ""
    fields: dict[str, str] = field(default_factory=dict)


@dataclass
class Category:
    id: str
    name: str
    count: int = 0
    columns: list[str] = field(default_factory=list)


def _first_field(fields: dict[str, str], names: tuple[str, ...]) -> str:
    for key, value in fields.items():
        if key.strip().lower() in names:
            return value.strip()
    return ""


def parts_from_table(table: CsvTable, category: str) -> list[Part]:
    """
    Convert a catalog CSV table into Part records.

    The IPN comes from an ipn/part_number/pn column, else the first column.
    """
    headers = table.headers
    ipn_idx = find_column(headers, IPN_HEADERS)
    if ipn_idx == -1:
        ipn_idx = 0

    parts: list[Part] = []
    for row in table.rows:
        fields = {h: row[i] for i, h in enumerate(headers) if i < len(row)}
        ipn = row[ipn_idx].strip() if ipn_idx < len(row) else ""
        if not ipn:
            continue
        fields[CATEGORY_FIELD] = category
        parts.append(
            Part(
                ipn=ipn,
                category=category,
                description=_first_field(fields, DESCRIPTION_HEADERS),
                manufacturer=_first_field(fields, MANUFACTURER_HEADERS),
                mpn=_first_field(fields, MPN_HEADERS),
                fields=fields,
            )
        )
    return parts


class PartCatalog:
    """
    Read-only view of the flat-file part catalog under `parts_dir`.

    The directory is scanned lazily on first use and the result is kept for
    the lifetime of this instance only; build one per request.

    Layout:
    - <parts_dir>/<category>.csv           -> category "<category>"
    - <parts_dir>/<category>/<anything>.csv -> category "<category>"

    Files named after an assembly IPN (e.g. PCA-001.csv) are composition
    files and are not part of the catalog.
    """

    def __init__(self, parts_dir: Optional[Path]):
        self.parts_dir = parts_dir
        self._categories: Optional[dict[str, list[Part]]] = None
        self._schemas: dict[str, list[str]] = {}
        self._titles: dict[str, str] = {}
        self._index: Optional[dict[str, Part]] = None

    # -------------------------
    # Loading
    # -------------------------
    def _load_file(
        self,
        categories: dict[str, list[Part]],
        path: Path,
        category: str,
        widest_schema: bool,
    ) -> None:
        table = read_csv_table(path)
        if table is None:
            return
        categories.setdefault(category, []).extend(parts_from_table(table, category))
        if not widest_schema or len(table.headers) > len(self._schemas.get(category, [])):
            self._schemas[category] = table.headers
        if table.title:
            self._titles[category] = table.title

    def _load(self) -> dict[str, list[Part]]:
        if self._categories is not None:
            return self._categories

        categories: dict[str, list[Part]] = {}
        self._categories = categories
        if self.parts_dir is None:
            logger.debug("Parts directory not configured")
            return categories

        try:
            entries = sorted(self.parts_dir.iterdir())
        except OSError as exc:
            logger.debug("Parts directory not available: %s (%s)", self.parts_dir, exc)
            return categories

        for entry in entries:
            try:
                if entry.is_dir():
                    category = entry.name.lower()
                    for csv_path in sorted(entry.glob("*.csv")):
                        if not is_assembly_ipn(csv_path.stem):
                            self._load_file(categories, csv_path, category, widest_schema=True)
                elif entry.suffix.lower() == ".csv" and not is_assembly_ipn(entry.stem):
                    self._load_file(categories, entry, entry.stem.lower(), widest_schema=False)
            except OSError as exc:
                logger.warning("Skipping unreadable catalog entry %s: %s", entry, exc)

        logger.debug(
            "Loaded part catalog from %s: %d categories, %d parts",
            self.parts_dir,
            len(categories),
            sum(len(p) for p in categories.values()),
        )
        return self._categories

    # -------------------------
    # Queries
    # -------------------------
    def all_parts(self) -> list[Part]:
        cats = self._load()
        return [p for name in sorted(cats) for p in cats[name]]

    def lookup_part(self, ipn: str) -> Optional[Part]:
        """Exact IPN match; the first category in name order wins for duplicates."""
        if self._index is None:
            self._index = {}
            for part in self.all_parts():
                self._index.setdefault(part.ipn, part)
        return self._index.get(ipn)

    def describe(self, ipn: str) -> str:
        """Best-effort description for `ipn`; empty string when unknown."""
        part = self.lookup_part(ipn)
        return part.description if part else ""

    def list_parts(
        self,
        *,
        category: Optional[str] = None,
        q: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Part], int]:
        """
        Filter, de-duplicate, sort and paginate catalog parts.

        - `category` restricts to one category id.
        - `q` is a case-insensitive substring match over the IPN and every field value.
        """
        if category:
            parts = list(self._load().get(category, []))
        else:
            parts = self.all_parts()

        if q:
            needle = q.lower()
            parts = [
                p
                for p in parts
                if needle in p.ipn.lower()
                or any(needle in v.lower() for v in p.fields.values())
            ]

        seen: set[str] = set()
        deduped: list[Part] = []
        for p in parts:
            if p.ipn not in seen:
                seen.add(p.ipn)
                deduped.append(p)

        deduped.sort(key=lambda p: p.ipn)
        total = len(deduped)
        page = max(page, 1)
        limit = max(limit, 1)
        start = min((page - 1) * limit, total)
        return deduped[start:start + limit], total

    def list_categories(self) -> list[Category]:
        cats = self._load()
        result = [
            Category(
                id=name,
                name=self._titles.get(name) or name,
                count=len(parts),
                columns=list(self._schemas.get(name, [])),
            )
            for name, parts in cats.items()
        ]
        result.sort(key=lambda c: c.name)
        return result

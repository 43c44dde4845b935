# app/services/parts_service.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from app.catalog.composition import iter_bom_files, read_bom_lines
from app.catalog.parts_store import Category, Part, PartCatalog
from app.schemas.bom import WhereUsedEntry

logger = logging.getLogger(__name__)


def list_parts(
    parts_dir: Optional[Path],
    *,
    category: Optional[str] = None,
    q: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[Part], int]:
    return PartCatalog(parts_dir).list_parts(category=category, q=q, page=page, limit=limit)


def get_part(parts_dir: Optional[Path], ipn: str) -> Optional[Part]:
    return PartCatalog(parts_dir).lookup_part(ipn)


def list_categories(parts_dir: Optional[Path]) -> list[Category]:
    return PartCatalog(parts_dir).list_categories()


def where_used(parts_dir: Optional[Path], ipn: str) -> list[WhereUsedEntry]:
    """
    Every assembly whose composition file lists `ipn` (case-insensitive).

    One entry per matching row, so an IPN placed twice in the same assembly
    shows up twice. Sorted by assembly IPN; rows keep file order.
    """
    catalog = PartCatalog(parts_dir)
    needle = ipn.strip().lower()
    entries: list[WhereUsedEntry] = []

    for assembly_ipn, path in iter_bom_files(parts_dir):
        for line in read_bom_lines(path):
            if line.ipn.lower() != needle:
                continue
            entries.append(
                WhereUsedEntry(
                    assembly_ipn=assembly_ipn,
                    description=catalog.describe(assembly_ipn),
                    qty=line.qty,
                    ref=line.ref,
                )
            )

    entries.sort(key=lambda e: e.assembly_ipn)
    logger.debug("where-used for %s: %d entries", ipn, len(entries))
    return entries

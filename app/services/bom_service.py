# app/services/bom_service.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from app.catalog.composition import BomLine, load_bom
from app.catalog.ipn import is_assembly_ipn
from app.catalog.parts_store import PartCatalog
from app.config import CyclePolicy
from app.schemas.bom import BomNode, TruncationReason

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 5

ASSEMBLY_IPN_MESSAGE = "BOM only available for assembly IPNs (PCA, ASY prefix)"
MAX_DEPTH_DESCRIPTION = "(max depth reached)"
CYCLE_DESCRIPTION = "(circular reference)"


class InvalidAssemblyIPNError(ValueError):
    """Raised when a BOM is requested for an IPN that is not an assembly."""


class CircularBomError(RuntimeError):
    """Raised under the "reject" cycle policy when an assembly contains itself."""

    def __init__(self, path: tuple[str, ...]):
        self.path = path
        super().__init__("Circular BOM reference: " + " -> ".join(path))


def require_assembly_ipn(ipn: str) -> None:
    if not is_assembly_ipn(ipn):
        raise InvalidAssemblyIPNError(ASSEMBLY_IPN_MESSAGE)


class BomTraversal:
    """
    Rules shared by every walk over the composition graph.

    The graph may contain cycles. Termination is guaranteed by the depth
    guard: a node deeper than `max_depth` is never expanded. Depending on
    `cycle_policy`, revisiting an IPN already on the current path is also
    handled explicitly:

    - "depth"  -> no path tracking; a cycle unrolls until the depth guard stops it
    - "mark"   -> the revisited node becomes a terminal "cycle" placeholder
    - "reject" -> CircularBomError is raised
    """

    def __init__(
        self,
        parts_dir: Optional[Path],
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        cycle_policy: CyclePolicy = "depth",
    ):
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        if cycle_policy not in ("depth", "mark", "reject"):
            raise ValueError(f"Invalid cycle policy: {cycle_policy!r}")
        self.parts_dir = parts_dir
        self.max_depth = max_depth
        self.cycle_policy = cycle_policy

    def _stop_reason(
        self, ipn: str, depth: int, ancestors: tuple[str, ...]
    ) -> Optional[TruncationReason]:
        if self.cycle_policy != "depth" and ipn in ancestors:
            path = (*ancestors, ipn)
            if self.cycle_policy == "reject":
                raise CircularBomError(path)
            logger.info("Circular BOM reference truncated: %s", " -> ".join(path))
            return "cycle"
        if depth > self.max_depth:
            logger.debug(
                "BOM depth guard hit for %s at depth %d (max_depth=%d)",
                ipn,
                depth,
                self.max_depth,
            )
            return "max_depth"
        return None

    def _lines(self, ipn: str) -> list[BomLine]:
        return load_bom(self.parts_dir, ipn)


class BomResolver(BomTraversal):
    """Expands an assembly IPN into a BomNode tree."""

    def __init__(
        self,
        parts_dir: Optional[Path],
        *,
        catalog: Optional[PartCatalog] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        cycle_policy: CyclePolicy = "depth",
    ):
        super().__init__(parts_dir, max_depth=max_depth, cycle_policy=cycle_policy)
        self.catalog = catalog if catalog is not None else PartCatalog(parts_dir)

    def resolve_bom(self, ipn: str) -> BomNode:
        """
        Resolve the full BOM tree for an assembly.

        Raises InvalidAssemblyIPNError for non-assembly IPNs. Missing or
        malformed composition data yields fewer children, never an error.
        """
        require_assembly_ipn(ipn)
        logger.debug(
            "Resolving BOM for %s (max_depth=%d, cycle_policy=%s)",
            ipn,
            self.max_depth,
            self.cycle_policy,
        )
        return self._expand(ipn, 0, ())

    def _expand(self, ipn: str, depth: int, ancestors: tuple[str, ...]) -> BomNode:
        reason = self._stop_reason(ipn, depth, ancestors)
        if reason is not None:
            description = CYCLE_DESCRIPTION if reason == "cycle" else MAX_DEPTH_DESCRIPTION
            return BomNode(ipn=ipn, description=description, truncated=reason)

        node = BomNode(ipn=ipn, description=self.catalog.describe(ipn))
        path = (*ancestors, ipn)

        for line in self._lines(ipn):
            if is_assembly_ipn(line.ipn):
                child = self._expand(line.ipn, depth + 1, path)
                # Row data describes the child's role in this parent
                child.qty = line.qty
                child.ref = line.ref or None
                if not child.description:
                    child.description = line.description
            else:
                child = BomNode(
                    ipn=line.ipn,
                    description=line.description or self.catalog.describe(line.ipn),
                    qty=line.qty,
                    ref=line.ref or None,
                )
            node.children.append(child)

        return node


def resolve_bom(
    parts_dir: Optional[Path],
    ipn: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    cycle_policy: CyclePolicy = "depth",
) -> BomNode:
    resolver = BomResolver(parts_dir, max_depth=max_depth, cycle_policy=cycle_policy)
    return resolver.resolve_bom(ipn)

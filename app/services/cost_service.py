# app/services/cost_service.py
from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from app.catalog.ipn import is_assembly_ipn
from app.config import CyclePolicy
from app.schemas.bom import PartCostResponse
from app.services.bom_service import DEFAULT_MAX_DEPTH, BomTraversal
from app.services.price_history import PriceLookup, latest_price, make_price_lookup

logger = logging.getLogger(__name__)

PRICE_DECIMALS = 2


class CostAggregator(BomTraversal):
    """
    Rolls up the purchase cost of an assembly.

    Walks the same graph as BomResolver, under the same depth guard and
    cycle policy, but returns a number instead of a tree:

    - leaf row      -> qty * latest unit price (0 when unknown)
    - assembly row  -> qty * rolled-up cost of that assembly

    Quantities therefore multiply along each path. A branch cut off by the
    depth guard or a "mark" cycle contributes 0, so results for very deep or
    circular BOMs are an undercount, never infinite or negative. A branch
    whose cost overflows a float is dropped the same way.
    """

    def __init__(
        self,
        parts_dir: Optional[Path],
        price_lookup: PriceLookup,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        cycle_policy: CyclePolicy = "depth",
    ):
        super().__init__(parts_dir, max_depth=max_depth, cycle_policy=cycle_policy)
        self.price_lookup = price_lookup
        self._prices: dict[str, float] = {}

    def unit_price(self, ipn: str) -> float:
        if ipn not in self._prices:
            price = self.price_lookup(ipn)
            if price is None or not math.isfinite(price) or price < 0:
                price = 0.0
            self._prices[ipn] = price
        return self._prices[ipn]

    def rollup_cost(self, ipn: str) -> float:
        """Total cost of one unit of `ipn`; 0.0 when it has no composition data."""
        total = self._rollup(ipn, 0, ())
        logger.debug("Rolled-up BOM cost for %s: %s", ipn, total)
        return total

    def _rollup(self, ipn: str, depth: int, ancestors: tuple[str, ...]) -> float:
        if self._stop_reason(ipn, depth, ancestors) is not None:
            return 0.0

        path = (*ancestors, ipn)
        total = 0.0
        for line in self._lines(ipn):
            if is_assembly_ipn(line.ipn):
                branch = line.qty * self._rollup(line.ipn, depth + 1, path)
            else:
                branch = line.qty * self.unit_price(line.ipn)
            # Overflowing branches are dropped like truncated ones
            if not math.isfinite(branch) or not math.isfinite(total + branch):
                logger.warning(
                    "BOM cost overflow under %s at depth %d (row %s, qty=%s); contributing 0",
                    ipn,
                    depth,
                    line.ipn,
                    line.qty,
                )
                continue
            total += branch
        return total


def get_part_cost(
    db: Session,
    parts_dir: Optional[Path],
    ipn: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    cycle_policy: CyclePolicy = "depth",
) -> PartCostResponse:
    """
    Cost summary for any IPN.

    - last_unit_price / po_id / last_ordered: only if purchase history exists
    - bom_cost: only for assembly IPNs (0.0 when no composition file exists)
    """
    result = PartCostResponse(ipn=ipn)

    record = latest_price(db, ipn)
    if record is not None:
        result.last_unit_price = round(record.unit_price, PRICE_DECIMALS)
        result.po_id = record.po_id
        result.last_ordered = record.ordered_at

    if is_assembly_ipn(ipn):
        aggregator = CostAggregator(
            parts_dir,
            make_price_lookup(db),
            max_depth=max_depth,
            cycle_policy=cycle_policy,
        )
        result.bom_cost = round(aggregator.rollup_cost(ipn), PRICE_DECIMALS)

    return result

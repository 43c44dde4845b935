# app/services/price_history.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models.purchasing import POLine, PurchaseOrder

logger = logging.getLogger(__name__)

PriceLookup = Callable[[str], Optional[float]]


@dataclass(frozen=True)
class PriceRecord:
    unit_price: float
    po_id: str
    ordered_at: datetime


def latest_price(db: Session, ipn: str) -> Optional[PriceRecord]:
    """
    Most recent non-zero unit price paid for `ipn`.

    Ordered by purchase order creation time, newest first; ties go to the
    most recently inserted line. Returns None when there is no history.
    """
    stmt = (
        select(POLine.unit_price, POLine.po_id, PurchaseOrder.created_at)
        .join(PurchaseOrder, PurchaseOrder.id == POLine.po_id)
        .where(POLine.ipn == ipn, POLine.unit_price > 0)
        .order_by(PurchaseOrder.created_at.desc(), POLine.id.desc())
        .limit(1)
    )
    row = db.execute(stmt).first()
    if row is None:
        logger.debug("No purchase price history for ipn=%s", ipn)
        return None
    return PriceRecord(unit_price=float(row.unit_price), po_id=row.po_id, ordered_at=row.created_at)


def make_price_lookup(db: Session) -> PriceLookup:
    """Adapt latest_price to the plain `ipn -> price | None` callable the cost aggregator takes."""

    def lookup(ipn: str) -> Optional[float]:
        record = latest_price(db, ipn)
        return record.unit_price if record else None

    return lookup

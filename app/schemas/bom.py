from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

TruncationReason = Literal["max_depth", "cycle"]


class BomNode(BaseModel):
    """
    One node of a resolved BOM tree.

    `qty` and `ref` come from the immediate parent's composition row only;
    they are not multiplied down the tree. The root has no qty.
    """
    ipn: str
    description: str = ""
    qty: Optional[float] = None
    ref: Optional[str] = None
    truncated: Optional[TruncationReason] = Field(
        default=None,
        description='Set on placeholder nodes: "max_depth" or "cycle".',
    )
    children: List["BomNode"] = Field(default_factory=list)


class PartCostResponse(BaseModel):
    ipn: str
    last_unit_price: Optional[float] = None
    po_id: Optional[str] = None
    last_ordered: Optional[datetime] = None
    bom_cost: Optional[float] = Field(
        default=None,
        description="Rolled-up BOM cost; present only for assembly IPNs.",
    )


class WhereUsedEntry(BaseModel):
    assembly_ipn: str
    description: str = ""
    qty: float
    ref: str = ""


BomNode.model_rebuild()

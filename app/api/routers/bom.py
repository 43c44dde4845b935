from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.db.session import get_db
from app.schemas.bom import BomNode, PartCostResponse
from app.services import cost_service
from app.services.bom_service import (
    BomResolver,
    CircularBomError,
    InvalidAssemblyIPNError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/parts", tags=["bom"])


@router.get(
    "/{ipn}/bom",
    response_model=BomNode,
    response_model_exclude_none=True,
    summary="Get multi-level bill of materials for an assembly",
    description=(
        "Recursively expand an assembly (PCA-/ASY- prefix) into a BOM tree. "
        "Assemblies without a composition file resolve to a childless node."
    ),
)
def get_bom(
    ipn: str,
    max_depth: Optional[int] = Query(
        default=None, ge=0, le=50, description="Override the configured BOM depth guard for this request."
    ),
    settings: Settings = Depends(get_settings),
) -> BomNode:
    resolver = BomResolver(
        settings.parts_dir,
        max_depth=settings.bom_max_depth if max_depth is None else max_depth,
        cycle_policy=settings.bom_cycle_policy,
    )
    try:
        return resolver.resolve_bom(ipn)
    except InvalidAssemblyIPNError as e:
        logger.debug("BOM rejected for non-assembly ipn=%s", ipn)
        raise HTTPException(status_code=400, detail=str(e))
    except CircularBomError as e:
        logger.warning("BOM rejected for ipn=%s: %s", ipn, e)
        raise HTTPException(status_code=422, detail=str(e))


@router.get(
    "/{ipn}/cost",
    response_model=PartCostResponse,
    response_model_exclude_none=True,
    summary="Get last purchase price and rolled-up BOM cost",
    description=(
        "Any IPN is accepted. The last purchase price is included when purchase "
        "history exists; the rolled-up BOM cost only for assembly IPNs."
    ),
)
def get_cost(
    ipn: str,
    max_depth: Optional[int] = Query(
        default=None, ge=0, le=50, description="Override the configured BOM depth guard for this request."
    ),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> PartCostResponse:
    try:
        return cost_service.get_part_cost(
            db,
            settings.parts_dir,
            ipn,
            max_depth=settings.bom_max_depth if max_depth is None else max_depth,
            cycle_policy=settings.bom_cycle_policy,
        )
    except CircularBomError as e:
        logger.warning("Cost rollup rejected for ipn=%s: %s", ipn, e)
        raise HTTPException(status_code=422, detail=str(e))

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.config import Settings, get_settings
from app.schemas.bom import WhereUsedEntry
from app.schemas.parts import CategoryItem, PartItem, PartListResponse
from app.services import parts_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/parts", tags=["parts"])


@router.get(
    "",
    response_model=PartListResponse,
    summary="List parts",
    description="List catalog parts with optional category filter and text search. Results are paginated.",
)
def list_parts(
    category: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Search IPN and all field values"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    settings: Settings = Depends(get_settings),
) -> PartListResponse:
    items, total = parts_service.list_parts(
        settings.parts_dir, category=category, q=q, page=page, limit=limit
    )
    logger.debug(
        "List parts returned %s items (total=%s) for category=%s q=%s",
        len(items),
        total,
        category,
        q,
    )
    return PartListResponse(
        items=[PartItem.model_validate(p) for p in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/categories", response_model=List[CategoryItem], summary="List part categories")
def list_categories(settings: Settings = Depends(get_settings)) -> List[CategoryItem]:
    return [CategoryItem.model_validate(c) for c in parts_service.list_categories(settings.parts_dir)]


@router.get("/{ipn}", response_model=PartItem, summary="Get part by IPN")
def get_part(ipn: str, settings: Settings = Depends(get_settings)) -> PartItem:
    part = parts_service.get_part(settings.parts_dir, ipn)
    if not part:
        logger.debug("Part not found: ipn=%s", ipn)
        raise HTTPException(status_code=404, detail="Part not found")
    return PartItem.model_validate(part)


@router.get(
    "/{ipn}/where-used",
    response_model=List[WhereUsedEntry],
    summary="List assemblies that use a part",
)
def get_where_used(ipn: str, settings: Settings = Depends(get_settings)) -> List[WhereUsedEntry]:
    return parts_service.where_used(settings.parts_dir, ipn)

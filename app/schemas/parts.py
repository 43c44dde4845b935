from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel


class PartItem(BaseModel):
    ipn: str
    category: str
    description: str = ""
    manufacturer: str = ""
    mpn: str = ""
    fields: Dict[str, str] = {}

    model_config = {"from_attributes": True}


class PartListResponse(BaseModel):
    items: List[PartItem]
    total: int
    page: int
    limit: int


class CategoryItem(BaseModel):
    id: str
    name: str
    count: int
    columns: List[str]

    model_config = {"from_attributes": True}

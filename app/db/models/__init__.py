# app/db/models/__init__.py

from app.db.base import Base

from .purchasing import PurchaseOrder, POLine

__all__ = [
    "Base",
    "PurchaseOrder",
    "POLine",
]

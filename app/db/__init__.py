# app/db/__init__.py
"""Purchase history storage: declarative base, session factory and ORM models."""

from .base import Base
from .session import SessionLocal, engine, get_db
from .models import POLine, PurchaseOrder

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "PurchaseOrder",
    "POLine",
]

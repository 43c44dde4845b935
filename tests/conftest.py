"""Shared fixtures: a temporary parts/BOM tree and an in-memory price store."""

from __future__ import annotations

import csv
import os
import tempfile
from datetime import datetime
from pathlib import Path

# Keep import-time settings (logging, engine) away from the working tree.
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "bomroll-test-logs"))
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings
from app.db.base import Base
from app.db.models import POLine, PurchaseOrder
from app.db.session import get_db

BOM_HEADER = ["IPN", "qty", "ref", "description"]


def _write_rows(path: Path, rows, mode: str = "w") -> None:
    with path.open(mode, newline="", encoding="utf-8") as f:
        csv.writer(f).writerows(rows)


@pytest.fixture
def parts_dir(tmp_path: Path) -> Path:
    d = tmp_path / "parts"
    d.mkdir()
    return d


@pytest.fixture
def bom_file(parts_dir: Path):
    """Write <ipn>.csv (optionally inside a subdirectory) with a standard BOM header."""

    def _make(ipn: str, rows, *, header=BOM_HEADER, subdir: str | None = None) -> Path:
        directory = parts_dir / subdir if subdir else parts_dir
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{ipn}.csv"
        _write_rows(path, [list(header), *rows])
        return path

    return _make


@pytest.fixture
def components(parts_dir: Path):
    """Append catalog rows (ipn, description) to z-components.csv."""

    def _add(*entries: tuple[str, str]) -> Path:
        path = parts_dir / "z-components.csv"
        rows = [[ipn, desc, "TestMfg"] for ipn, desc in entries]
        if not path.exists():
            rows.insert(0, ["IPN", "description", "manufacturer"])
            _write_rows(path, rows)
        else:
            _write_rows(path, rows, mode="a")
        return path

    return _add


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(bind=db_engine, autoflush=False, future=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_price(db_session):
    """Record a purchase order line so `ipn` has a last known unit price."""

    def _add(ipn: str, unit_price: float, *, po_id: str | None = None, created_at: datetime | None = None):
        po_id = po_id or f"PO-{ipn}"
        po = db_session.get(PurchaseOrder, po_id)
        if po is None:
            po = PurchaseOrder(
                id=po_id,
                vendor="Test Supplier",
                created_at=created_at or datetime(2026, 1, 15, 9, 30),
            )
            db_session.add(po)
        db_session.add(POLine(po_id=po_id, line_num=1, ipn=ipn, qty=1, unit_price=unit_price))
        db_session.commit()

    return _add


@pytest.fixture
def settings(parts_dir: Path) -> Settings:
    return Settings(parts_dir=parts_dir, database_url="sqlite://", bom_max_depth=5)


@pytest.fixture
def client(settings, db_session):
    from app.api.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def example_bom(bom_file, components, add_price):
    """
    ASY-ROOT = 1x PCA-A + 1x RES-001
    PCA-A    = 2x RES-001
    RES-001 last bought at $0.10
    """
    components(
        ("RES-001", "100R resistor"),
        ("PCA-A", "Amplifier board"),
        ("ASY-ROOT", "Top-level assembly"),
    )
    bom_file("ASY-ROOT", [["PCA-A", "1", "A1", ""], ["RES-001", "1", "R1", "100R resistor"]])
    bom_file("PCA-A", [["RES-001", "2", "R1,R2", "100R resistor"]])
    add_price("RES-001", 0.10)


@pytest.fixture
def unreadable_subdir(parts_dir: Path, monkeypatch):
    """
    parts/locked/ behaves like a directory without search permission:
    listing it or stat-ing anything inside raises PermissionError.
    """
    locked = parts_dir / "locked"
    locked.mkdir()
    real_is_file = Path.is_file
    real_glob = Path.glob

    def is_file(self, *args, **kwargs):
        if self.parent == locked:
            raise PermissionError(13, "Permission denied", str(self))
        return real_is_file(self, *args, **kwargs)

    def glob(self, *args, **kwargs):
        if self == locked:
            raise PermissionError(13, "Permission denied", str(self))
        return real_glob(self, *args, **kwargs)

    monkeypatch.setattr(Path, "is_file", is_file)
    monkeypatch.setattr(Path, "glob", glob)
    return locked

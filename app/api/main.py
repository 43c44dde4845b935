from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.logging_config import configure_logging
from app.config import get_settings

from app.api.routers import bom as bom_routes
from app.api.routers import parts as parts_routes


logger = logging.getLogger(__name__)

# Configure logging before anything else
configure_logging()
settings = get_settings()

app = FastAPI(
    title="BOM Rollup Service",
    version="0.1.0",
    description="Multi-level BOM resolution and cost rollup over a flat-file part catalog.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(settings.frontend_origin).rstrip("/")] if settings.frontend_origin else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Routers (all mounted under /api/v1)
# ---------------------------------------------------------------------------

app.include_router(bom_routes.router, prefix="/api/v1")    # /api/v1/parts/{ipn}/bom, /cost
app.include_router(parts_routes.router, prefix="/api/v1")  # /api/v1/parts/...

logger.info(
    "BOM service ready: parts_dir=%s max_depth=%s cycle_policy=%s",
    settings.parts_dir,
    settings.bom_max_depth,
    settings.bom_cycle_policy,
)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    """
    Simple health check endpoint for monitoring / readiness probes.
    """
    return {"status": "ok"}

# app/cli/bom_cli.py

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from app.config import get_settings
from app.db.session import SessionLocal
from app.logging_config import configure_logging
from app.services.bom_service import (
    BomResolver,
    CircularBomError,
    require_assembly_ipn,
)
from app.services.cost_service import CostAggregator
from app.services.price_history import make_price_lookup


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bomroll",
        description="Resolve a multi-level BOM tree, or roll up its purchase cost.",
    )
    parser.add_argument(
        "ipn",
        type=str,
        help="Assembly IPN (PCA- or ASY- prefix).",
    )
    parser.add_argument(
        "--cost",
        action="store_true",
        help="Print the rolled-up BOM cost instead of the tree.",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Override BOM_MAX_DEPTH from settings.",
    )
    parser.add_argument(
        "--parts-dir",
        type=str,
        default=None,
        help="Optional override for the parts directory. "
             "Defaults to PARTS_DIR from settings.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level regardless of LOG_LEVEL.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    configure_logging("DEBUG" if args.verbose else None)
    logger = logging.getLogger(__name__)
    settings = get_settings()

    parts_dir = (
        Path(args.parts_dir).expanduser().resolve()
        if args.parts_dir
        else settings.parts_dir
    )
    max_depth = settings.bom_max_depth if args.max_depth is None else args.max_depth

    logger.info("Parts dir: %s", parts_dir)
    logger.info("Max depth: %s, cycle policy: %s", max_depth, settings.bom_cycle_policy)

    try:
        if args.cost:
            require_assembly_ipn(args.ipn)
            with SessionLocal() as db:
                aggregator = CostAggregator(
                    parts_dir,
                    make_price_lookup(db),
                    max_depth=max_depth,
                    cycle_policy=settings.bom_cycle_policy,
                )
                total = aggregator.rollup_cost(args.ipn)
            print(json.dumps({"ipn": args.ipn, "bom_cost": round(total, 2)}))
        else:
            resolver = BomResolver(
                parts_dir,
                max_depth=max_depth,
                cycle_policy=settings.bom_cycle_policy,
            )
            tree = resolver.resolve_bom(args.ipn)
            print(tree.model_dump_json(exclude_none=True, indent=2))
    except (ValueError, CircularBomError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())

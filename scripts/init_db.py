#!/usr/bin/env python3
"""
Create (or recreate) the inventory schema.

Reads the database URL from the active configuration unless --db-url is
given.  With --drop, every inventory table is dropped first; that deletes
all batches, allocations, purchase orders and movements.

Usage:
  python3 scripts/init_db.py [--config PATH] [--db-url URL] [--drop]
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create the inventory database schema")
    p.add_argument("--config", default=None, help="YAML config file (default: INVENTORY_CONFIG or packaged defaults)")
    p.add_argument("--db-url", default=None, help="Database URL (overrides the config)")
    p.add_argument("--drop", action="store_true", help="Drop existing tables first")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)

    from dataclasses import replace

    from inventory_config import get_active_config
    from inventory_config.bridges import init_engine_from_config
    from inventory_kernel.db.engine import create_tables, drop_tables, reset_engine
    from inventory_kernel.logging_config import get_logger

    logger = get_logger("scripts.init_db")

    config = get_active_config(args.config)
    if args.db_url:
        config = replace(config, database=replace(config.database, url=args.db_url))

    engine = init_engine_from_config(config)
    try:
        if args.drop:
            drop_tables()
            logger.warning("schema_dropped", extra={"dialect": engine.dialect.name})
        create_tables()
        logger.info("schema_created", extra={"dialect": engine.dialect.name})
    finally:
        reset_engine()

    print(f"Schema ready on {engine.url.render_as_string(hide_password=True)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

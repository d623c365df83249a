#!/usr/bin/env python3
"""
Run Import Tool - Load robots and finished runs into the SheetSync database.

Useful for replaying runs recorded elsewhere through `sheetsync sync`.

Input is JSON Lines, one record per line, tagged by `kind`:

    {"kind": "robot", "robot_id": "robot-1", "name": "Leads", "user_id": 1}
    {"kind": "run", "run_id": "run-42", "robot_id": "robot-1",
     "status": "success", "serializable_output": {"item-0": [{"a": 1}]}}

Usage:
    python tools/import_runs.py exported.jsonl
    python tools/import_runs.py exported.jsonl --db data/sheetsync.db
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import aiosqlite

from sheetsync.adapters.sqlite import SQLiteRepository
from sheetsync.config import get_settings
from sheetsync.domains.identity import TokenEncryption

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def read_records(path: Path) -> list[dict[str, Any]]:
    """Parse a JSONL file, skipping blank and malformed lines."""
    records = []
    with path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as e:
                logger.warning("Skipping line %d: %s", line_no, e)
    return records


async def import_records(repo: SQLiteRepository, records: list[dict[str, Any]]) -> dict[str, int]:
    """
    Insert robots and runs; existing ids are skipped.

    Returns:
        Stats dict with robot/run/skipped counts
    """
    stats = {"robots": 0, "runs": 0, "skipped": 0}

    for record in records:
        kind = record.get("kind")
        try:
            if kind == "robot":
                await repo.insert_robot(
                    record["robot_id"],
                    name=record.get("name", ""),
                    user_id=record.get("user_id"),
                    integrations=record.get("integrations"),
                )
                stats["robots"] += 1
            elif kind == "run":
                await repo.insert_run(
                    record["run_id"],
                    record["robot_id"],
                    record["status"],
                    serializable_output=record.get("serializable_output"),
                    binary_output=record.get("binary_output"),
                )
                stats["runs"] += 1
            else:
                logger.warning("Unknown record kind: %r", kind)
                stats["skipped"] += 1
        except (KeyError, aiosqlite.IntegrityError) as e:
            logger.warning("Skipping %s record: %s", kind, e)
            stats["skipped"] += 1

    return stats


async def run(source: Path, db_path: Path, encryption_key: str | None) -> int:
    if not source.exists():
        logger.error("Source file not found: %s", source)
        return 1

    repo = SQLiteRepository(db_path, encryption=TokenEncryption(encryption_key))
    try:
        await repo.initialize()
        stats = await import_records(repo, read_records(source))
    finally:
        await repo.close()

    logger.info(
        "Imported %d robots and %d runs into %s (%d skipped)",
        stats["robots"],
        stats["runs"],
        db_path,
        stats["skipped"],
    )
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Import robots and runs into SheetSync")
    parser.add_argument("source", type=Path, help="JSONL file to import")
    parser.add_argument("--db", type=Path, default=None, help="SQLite database path")
    args = parser.parse_args()

    settings = get_settings()
    return asyncio.run(
        run(args.source, args.db or settings.db_path, settings.oauth_encryption_key)
    )


if __name__ == "__main__":
    sys.exit(main())

# scripts/scrape_once.py
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from rankwatch.cache_manager import CacheManager
from rankwatch.config import CATEGORIES, DATA_DIR
from rankwatch.errors import RankwatchError
from rankwatch.logging_config import configure_logging
from rankwatch.snapshot_store import SnapshotStore
from rankwatch.sync_rankings import run_sync


def main() -> int:
    ap = argparse.ArgumentParser(description="Rankwatch one-shot collector (fetch + commit a snapshot)")
    ap.add_argument("--data-dir", type=Path, default=DATA_DIR, help="Snapshot directory")
    ap.add_argument("--categories", default=",".join(CATEGORIES), help="Comma-separated categories to fetch")
    ap.add_argument("--log-level", default=None, help="Override RANKWATCH_LOGLEVEL")
    args = ap.parse_args()

    configure_logging(args.log_level)

    manager = CacheManager(SnapshotStore(args.data_dir))
    categories = [c.strip() for c in args.categories.split(",") if c.strip()]
    try:
        res = asyncio.run(run_sync(manager, categories))
    except RankwatchError as e:
        print(json.dumps({"status": "error", "error": str(e)}, indent=2))
        return 1
    print(json.dumps(res, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

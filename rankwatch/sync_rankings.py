from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from .cache_manager import CacheManager
from .errors import FetchFailed, RankwatchError
from .fetcher import fetch_rankings

logger = logging.getLogger(__name__)

Fetch = Callable[..., Dict[str, List[Dict[str, Any]]]]


async def run_sync(
    manager: CacheManager,
    categories: Optional[List[str]] = None,
    fetch: Optional[Fetch] = None,
) -> Dict[str, Any]:
    """
    One collection cycle: fetch every category, then commit the result.

    Raises FetchFailed or CommitPartial; the caller decides how to report it.
    """
    fetch = fetch or fetch_rankings
    try:
        data = await run_in_threadpool(fetch, categories)
    except RankwatchError:
        raise
    except Exception as e:
        raise FetchFailed(f"ranking fetch failed: {e}") from e

    filename = await manager.commit(data)
    return {
        "status": "ok",
        "updated": list(data.keys()),
        "filename": filename,
        "entries": {cat: len(rows) for cat, rows in data.items()},
    }

# rankwatch/cache_manager.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from .config import CATEGORY_ALIASES
from .errors import CommitPartial, RankwatchError, StorageUnavailable
from .latest_cache import LatestCache
from .snapshot_store import Snapshot, SnapshotStore, snapshot_filename

logger = logging.getLogger(__name__)


def resolve_category(name: str) -> str:
    """Map a request-facing category name to its cache key ("seo" -> "marketing/seo")."""
    return CATEGORY_ALIASES.get(name, name)


class CacheManager:
    def __init__(self, store: SnapshotStore, cache: Optional[LatestCache] = None):
        self.store = store
        self.cache = cache or LatestCache()
        self._current_filename: Optional[str] = None

    @property
    def current_filename(self) -> Optional[str]:
        """Snapshot file the in-memory cache was last loaded from or persisted to."""
        return self._current_filename

    async def recover(self) -> None:
        """
        Load the newest snapshot on disk into the cache.

        Never raises: any storage or parse problem leaves the cache empty so
        the process can still start.
        """
        logger.info("Initializing cache from %s", self.store.root)
        try:
            created = await run_in_threadpool(self.store.ensure_directory)
        except StorageUnavailable:
            logger.exception("Cache initialized (empty due to directory error)")
            return
        if created:
            logger.info("Cache initialized (empty, new data directory)")
            return

        try:
            latest = await run_in_threadpool(self.store.latest_snapshot_file)
        except StorageUnavailable:
            logger.exception("Cache initialized (empty due to directory read error)")
            return
        if latest is None:
            logger.info("No historical ranking files found in %s; cache initialized (empty)", self.store.root)
            return

        try:
            snapshot = await run_in_threadpool(self.store.read_snapshot, latest)
        except RankwatchError:
            logger.exception("Error loading latest cache file %s; cache initialized (empty)", latest)
            return

        self.cache.replace(snapshot)
        self._current_filename = latest
        logger.info("Cache loaded from %s (%d categories)", latest, len(snapshot))

    async def commit(self, snapshot: Snapshot) -> str:
        """
        Serve `snapshot` immediately, then persist it as a new history file.

        The swap happens before the write and is not undone if the write
        fails; the failure is raised as CommitPartial.
        """
        self.cache.replace(snapshot)
        logger.info("In-memory cache updated (%d categories)", len(snapshot))

        now = datetime.now(timezone.utc)
        attempted = snapshot_filename(now)
        try:
            filename = await run_in_threadpool(self.store.write_snapshot, snapshot, now)
        except StorageUnavailable as e:
            logger.error(
                "Commit partial: cache advanced but %s was not written to %s: %s",
                attempted, self.store.root, e,
            )
            raise CommitPartial(attempted, e) from e

        self._current_filename = filename
        return filename

    def resolve_category(self, name: str) -> str:
        return resolve_category(name)

    def query(self, category: str) -> List[Dict[str, Any]]:
        return self.cache.get(self.resolve_category(category))

# rankwatch/api_main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, List
import logging
import re

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool

from .cache_manager import CacheManager
from .config import DATA_DIR, HOST, PORT, SCHEDULE_HOURS, SCHEDULER_ENABLED
from .errors import InvalidFilename, NotFound
from .logging_config import configure_logging
from .models import ScrapeResponse, StatusResponse
from .scheduler import RankingScheduler
from .snapshot_store import SnapshotStore
from .sync_rankings import run_sync

logger = logging.getLogger(__name__)

CATEGORY_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


# ----------------------------
# Lifespan: recovery + scheduler
# ----------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    manager = CacheManager(SnapshotStore(DATA_DIR))
    await manager.recover()
    app.state.manager = manager

    scheduler = None
    if SCHEDULER_ENABLED:
        scheduler = RankingScheduler(lambda: run_sync(manager), SCHEDULE_HOURS)
        scheduler.start()
    app.state.scheduler = scheduler

    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()


# ----------------------------
# App
# ----------------------------

app = FastAPI(
    title="Rankwatch API",
    description="Latest and historical model rankings per category",
    version="1.0.0",
    lifespan=lifespan,
)

# Read-only public data; no credentials involved
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def get_manager(request: Request) -> CacheManager:
    return request.app.state.manager


def _internal_error(message: str = "Internal Server Error") -> HTTPException:
    # Details stay in the server log
    return HTTPException(status_code=500, detail={"error": message})


# ----------------------------
# Collection trigger
# ----------------------------

@app.get("/api/scrape", response_model=ScrapeResponse)
async def scrape(manager: CacheManager = Depends(get_manager)) -> Dict[str, Any]:
    """Fetch all categories now and commit them as the latest snapshot."""
    logger.info("Starting manual scrape...")
    try:
        result = await run_sync(manager)
    except Exception:
        logger.exception("Error during manual scrape")
        raise _internal_error("Internal Server Error during scrape")
    logger.info("Manual scrape completed successfully (%s)", result["filename"])
    return {"status": "ok", "updated": result["updated"]}


@app.get("/api/status", response_model=StatusResponse)
def status(manager: CacheManager = Depends(get_manager)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "latest_file": manager.current_filename,
        "categories": manager.cache.categories(),
    }


# ----------------------------
# History endpoints (persisted snapshots)
# ----------------------------

@app.get("/api/rankings/history")
async def rankings_history(manager: CacheManager = Depends(get_manager)) -> List[str]:
    """Snapshot filenames, most recent first."""
    try:
        files = await run_in_threadpool(manager.store.list_snapshot_files)
    except Exception:
        logger.exception("Error listing history files")
        raise _internal_error()
    return list(reversed(files))


@app.get("/api/rankings/history/{filename:path}")
async def rankings_history_file(filename: str, manager: CacheManager = Depends(get_manager)):
    """Raw content of one snapshot file."""
    if not filename:
        raise HTTPException(status_code=404, detail={"error": "Not Found"})
    try:
        path = await run_in_threadpool(manager.store.snapshot_path, filename)
    except InvalidFilename:
        raise HTTPException(status_code=400, detail={"error": "Invalid filename"})
    except NotFound:
        raise HTTPException(status_code=404, detail={"error": "History file not found"})
    except Exception:
        logger.exception("Error reading history file %s", filename)
        raise _internal_error()
    return FileResponse(path, media_type="application/json")


# ----------------------------
# Latest rankings (in-memory cache)
# ----------------------------

@app.get("/api/rankings/{category}")
def rankings(category: str, manager: CacheManager = Depends(get_manager)) -> List[Dict[str, Any]]:
    """
    Current entries for one category. "seo" is served from "marketing/seo";
    an unknown category is an empty list.
    """
    if not CATEGORY_RE.match(category):
        raise HTTPException(status_code=404, detail={"error": "Not Found"})
    try:
        key = manager.resolve_category(category)
        logger.info("Request for category: %s (using cache key: %s)", category, key)
        return manager.query(category)
    except Exception:
        logger.exception("Error fetching category %s", category)
        raise _internal_error()


# Optional: local run
if __name__ == "__main__":
    import uvicorn

    configure_logging()
    uvicorn.run("rankwatch.api_main:app", host=HOST, port=PORT)

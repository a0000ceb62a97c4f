# rankwatch/config.py
import os
from pathlib import Path
from typing import Dict, List


def _project_root() -> Path:
    # rankwatch/config.py -> project root
    return Path(__file__).resolve().parents[1]


def _csv_env(name: str, default: str) -> List[str]:
    return [s.strip() for s in os.getenv(name, default).split(",") if s.strip()]


DATA_DIR = Path(os.getenv("RANKWATCH_DATA_DIR", str(_project_root() / "data")))

RANKINGS_BASE_URL = os.getenv("RANKWATCH_BASE_URL", "https://openrouter.ai/rankings")

# Order matters: snapshots keep categories in the order they were fetched.
CATEGORIES: List[str] = _csv_env(
    "RANKWATCH_CATEGORIES",
    "all,roleplay,programming,marketing,marketing/seo,technology,"
    "science,translation,legal,finance,health,trivia,academia",
)

# Request-facing name -> cache key
CATEGORY_ALIASES: Dict[str, str] = {
    "seo": "marketing/seo",
}

HTTP_TIMEOUT = float(os.getenv("RANKWATCH_HTTP_TIMEOUT", "60"))

SCHEDULE_HOURS: List[int] = [int(h) for h in _csv_env("RANKWATCH_SCHEDULE_HOURS", "0,12")]
SCHEDULER_ENABLED = os.getenv("RANKWATCH_SCHEDULER", "1").lower() in {"1", "true", "yes"}

LOG_LEVEL = os.getenv("RANKWATCH_LOGLEVEL", "INFO").upper()

HOST = os.getenv("RANKWATCH_HOST", "127.0.0.1")
PORT = int(os.getenv("RANKWATCH_PORT", "3000"))

# rankwatch/logging_config.py
from __future__ import annotations

import logging
from typing import Optional

from .config import LOG_LEVEL


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the API process and the CLI scripts."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

# rankwatch/snapshot_store.py
from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .errors import CorruptSnapshot, InvalidFilename, NotFound, StorageUnavailable
from .models import SnapshotShape

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "rankings_"
SNAPSHOT_RE = re.compile(r"^rankings_\d{8}_\d{6}\.json$")

Snapshot = Dict[str, List[Dict[str, Any]]]


def snapshot_filename(now: Optional[datetime] = None) -> str:
    """
    rankings_<YYYYMMDD>_<HHMMSS>.json in UTC, so that sorting the names
    sorts the snapshots chronologically.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return f"{SNAPSHOT_PREFIX}{now.strftime('%Y%m%d_%H%M%S')}.json"


def is_snapshot_filename(name: str) -> bool:
    return bool(SNAPSHOT_RE.match(name or ""))


def validate_filename(filename: str) -> str:
    name = filename or ""
    if "/" in name or "\\" in name or ".." in name or os.path.basename(name) != name:
        raise InvalidFilename(f"not a bare filename: {filename!r}")
    if not is_snapshot_filename(name):
        raise InvalidFilename(f"not a snapshot filename: {filename!r}")
    return name


@dataclass
class SnapshotStore:
    root: Path

    def ensure_directory(self) -> bool:
        """Create the directory if missing. Returns True when it was just created."""
        if self.root.is_dir():
            return False
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"cannot create data directory {self.root}: {e}") from e
        logger.info("Data directory created at %s", self.root)
        return True

    def list_snapshot_files(self) -> List[str]:
        """Snapshot names, oldest first. A missing directory has no snapshots."""
        try:
            names = os.listdir(self.root)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageUnavailable(f"cannot read data directory {self.root}: {e}") from e
        return sorted(n for n in names if is_snapshot_filename(n))

    def latest_snapshot_file(self) -> Optional[str]:
        files = self.list_snapshot_files()
        return files[-1] if files else None

    def snapshot_path(self, filename: str) -> Path:
        name = validate_filename(filename)
        path = self.root / name
        if not path.is_file():
            raise NotFound(f"snapshot not found: {name}")
        return path

    def read_snapshot(self, filename: str) -> Snapshot:
        path = self.snapshot_path(filename)
        try:
            raw_bytes = path.read_bytes()
        except FileNotFoundError as e:
            raise NotFound(f"snapshot not found: {path.name}") from e
        except OSError as e:
            raise StorageUnavailable(f"cannot read {path}: {e}") from e

        try:
            raw = raw_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptSnapshot(f"snapshot {path.name} is not UTF-8 text: {e}") from e

        if not raw.strip():
            raise CorruptSnapshot(f"snapshot {path.name} is empty")
        try:
            data = json.loads(raw)
            # shape only; entries are served exactly as stored
            return SnapshotShape.validate_python(data, strict=True)
        except (json.JSONDecodeError, ValidationError) as e:
            raise CorruptSnapshot(f"snapshot {path.name} is not a valid ranking snapshot: {e}") from e

    def write_snapshot(self, snapshot: Snapshot, now: Optional[datetime] = None) -> str:
        """
        Persist `snapshot` as a new file and return its name.

        Content goes to a hidden temp file first and is renamed into place,
        so a crash never leaves a truncated file under a snapshot name.
        """
        filename = snapshot_filename(now)
        target = self.root / filename
        tmp_name: Optional[str] = None
        try:
            payload = json.dumps(snapshot, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise StorageUnavailable(f"cannot serialize snapshot for {target}: {e}") from e

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{filename}.", suffix=".tmp", dir=self.root)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temp file %s", tmp_name)
            raise StorageUnavailable(f"cannot write {target}: {e}") from e

        logger.info("Historical ranking saved to %s", target)
        return filename

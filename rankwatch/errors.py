# rankwatch/errors.py
from __future__ import annotations

from typing import Optional


class RankwatchError(Exception):
    """Base class for every error raised by the snapshot cache."""


class StorageUnavailable(RankwatchError):
    """Snapshot directory or file could not be created, listed, read or written."""


class InvalidFilename(RankwatchError):
    """Requested snapshot name is not a bare ``rankings_YYYYMMDD_HHMMSS.json``."""


class NotFound(RankwatchError):
    pass


class CorruptSnapshot(RankwatchError):
    """Snapshot file is empty or does not hold a category -> entries mapping."""


class FetchFailed(RankwatchError):
    pass


class CommitPartial(RankwatchError):
    """
    The in-memory cache already serves the new snapshot but the durable write
    failed. Carries the attempted filename so the file can be reconciled by hand.
    """

    def __init__(self, filename: Optional[str], cause: BaseException):
        self.filename = filename
        self.cause = cause
        super().__init__(f"snapshot {filename or '<unnamed>'} not persisted: {cause}")

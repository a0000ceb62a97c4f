# rankwatch/latest_cache.py
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

Rows = Tuple[Mapping[str, Any], ...]


def _freeze(snapshot: Optional[Dict[str, List[Dict[str, Any]]]]) -> Mapping[str, Rows]:
    frozen = {
        cat: tuple(MappingProxyType(dict(e)) for e in (entries or []))
        for cat, entries in (snapshot or {}).items()
    }
    return MappingProxyType(frozen)


class LatestCache:
    """
    The current ranking snapshot, held as one read-only mapping.

    `replace` builds the new mapping off to the side and swaps a single
    reference, so a reader holds either the old snapshot or the new one.
    """

    def __init__(self) -> None:
        self._data: Mapping[str, Rows] = _freeze(None)

    def replace(self, snapshot: Dict[str, List[Dict[str, Any]]]) -> None:
        self._data = _freeze(snapshot)

    def get(self, category: str) -> List[Dict[str, Any]]:
        rows = self._data.get(category, ())
        return [dict(e) for e in rows]

    def categories(self) -> List[str]:
        return list(self._data.keys())

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        data = self._data
        return {cat: [dict(e) for e in rows] for cat, rows in data.items()}

    def __len__(self) -> int:
        return len(self._data)

import json
from pathlib import Path

import pytest

from rankwatch.snapshot_store import SnapshotStore


def make_entry(rank: int, name: str, **kw) -> dict:
    entry = {
        "rank": rank,
        "name": name,
        "link": f"/models/{name.lower()}",
        "description": f"{name} model",
        "context": 128000,
        "tokens": 1000 * rank,
        "tokenChangePercent": 1.5,
        "id": name.lower(),
    }
    entry.update(kw)
    return entry


def write_raw(root: Path, name: str, payload) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    p = root / name
    if isinstance(payload, bytes):
        p.write_bytes(payload)
    else:
        p.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return p


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def store(data_dir: Path) -> SnapshotStore:
    return SnapshotStore(data_dir)


@pytest.fixture
def sample_snapshot() -> dict:
    return {
        "all": [make_entry(1, "X"), make_entry(2, "Y")],
        "legal": [make_entry(1, "Lex")],
        "marketing/seo": [make_entry(1, "Seo")],
    }

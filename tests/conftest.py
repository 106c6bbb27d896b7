from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from runtime.services.log_service import LogService
from runtime.store.log_store import LogStore


@pytest.fixture
def now() -> datetime:
    """Fixed clock: 2024-01-31T00:00:00Z."""
    return datetime(2024, 1, 31, tzinfo=timezone.utc)


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    """Log file location inside a not-yet-existing directory."""
    return tmp_path / "data" / "changes.log"


@pytest.fixture
def store(log_path: Path) -> LogStore:
    return LogStore(log_path, fsync=False)


@pytest.fixture
def service(store: LogStore, now: datetime) -> LogService:
    return LogService(store, default_window_days=30, clock=lambda: now)


def change_line(timestamp: str, url: str = "https://example.com/a.txt", **fields) -> str:
    """Build a raw log line the way the historical writer produced them."""
    entry = {"timestamp": timestamp, "url": url, "email": "ops@example.com"}
    entry.update(fields)
    return json.dumps(entry)


def write_log(path: Path, lines: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")

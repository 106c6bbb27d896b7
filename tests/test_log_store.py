"""
Tests for LogStore: lazy creation, atomic append, atomic rewrite and
tolerance of damaged files.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

import pytest

from conftest import change_line, write_log
from exceptions.exceptions import LogStoreError
from runtime.models.change_models import ChangeEventRecord, MalformedLine
from runtime.store.log_store import LogStore


def test_absent_file_reads_as_empty(store: LogStore, log_path: Path) -> None:
    assert not store.exists()
    assert store.read_all() == []
    assert not log_path.exists()


def test_append_creates_file_and_keeps_order(store: LogStore, log_path: Path) -> None:
    first = change_line("2024-01-01T00:00:00Z")
    second = change_line("2024-01-02T00:00:00Z")

    store.append(first)
    store.append(second)

    assert log_path.read_text(encoding="utf-8") == f"{first}\n{second}\n"
    entries = store.read_all()
    assert [line for line, _ in entries] == [first, second]
    assert all(isinstance(decoded, ChangeEventRecord) for _, decoded in entries)


def test_append_rejects_line_breaks(store: LogStore, log_path: Path) -> None:
    store.append("existing")
    before = log_path.read_bytes()

    with pytest.raises(ValueError):
        store.append('{"a":1}\n{"b":2}')

    assert log_path.read_bytes() == before


def test_append_after_torn_tail_starts_a_new_line(store: LogStore, log_path: Path) -> None:
    log_path.parent.mkdir(parents=True)
    log_path.write_bytes(b'{"timestamp":"2024-01-01T00:00:00Z","url":"u"')
    line = change_line("2024-01-02T00:00:00Z")

    store.append(line)

    entries = store.read_all()
    assert len(entries) == 2
    assert isinstance(entries[0][1], MalformedLine)
    assert entries[1][0] == line
    assert isinstance(entries[1][1], ChangeEventRecord)


def test_trailing_incomplete_line_is_malformed(store: LogStore, log_path: Path) -> None:
    good = change_line("2024-01-01T00:00:00Z")
    log_path.parent.mkdir(parents=True)
    log_path.write_text(good + '\n{"timestamp":"2024-01-0', encoding="utf-8")

    entries = store.read_all()

    assert isinstance(entries[0][1], ChangeEventRecord)
    assert entries[1][1] == MalformedLine(raw='{"timestamp":"2024-01-0')


def test_empty_lines_are_skipped_but_whitespace_lines_are_kept(store: LogStore, log_path: Path) -> None:
    line = change_line("2024-01-01T00:00:00Z")
    write_log(log_path, ["", line, "   ", ""])

    entries = store.read_all()

    assert [raw for raw, _ in entries] == [line, "   "]
    assert entries[1][1] == MalformedLine(raw="   ")


def test_append_failure_raises_store_error(tmp_path: Path) -> None:
    directory = tmp_path / "not-a-file"
    directory.mkdir()

    with pytest.raises(LogStoreError) as excinfo:
        LogStore(directory, fsync=False).append("x")

    assert excinfo.value.operation == "append"


def test_concurrent_appends_are_all_kept(store: LogStore) -> None:
    def worker(n: int) -> None:
        for i in range(25):
            store.append(change_line("2024-01-01T00:00:00Z", url=f"https://example.com/{n}/{i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    entries = store.read_all()
    assert len(entries) == 200
    urls = {decoded.resource_url for _, decoded in entries}
    assert len(urls) == 200


def test_rewrite_to_empty_leaves_empty_file(store: LogStore, log_path: Path) -> None:
    store.append(change_line("2024-01-01T00:00:00Z"))

    store.rewrite([])

    assert store.exists()
    assert log_path.read_bytes() == b""
    assert store.read_all() == []


def test_rewrite_preserves_undecodable_bytes(store: LogStore, log_path: Path) -> None:
    good = change_line("2024-01-01T00:00:00Z").encode("utf-8")
    original = b"\xff\xfe binary junk\n" + good + b"\n"
    log_path.parent.mkdir(parents=True)
    log_path.write_bytes(original)

    store.rewrite([line for line, _ in store.read_all()])

    assert log_path.read_bytes() == original


def test_failed_rewrite_leaves_log_untouched(
    store: LogStore, log_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    store.append(change_line("2024-01-01T00:00:00Z"))
    before = log_path.read_bytes()

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)

    with pytest.raises(LogStoreError):
        store.rewrite(["replacement"])

    assert log_path.read_bytes() == before
    assert sorted(p.name for p in log_path.parent.iterdir()) == [log_path.name]

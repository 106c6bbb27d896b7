"""
LogStore: durable, newline-delimited change log.

Writes one line per change event to a single UTF-8 file, by default:

    changes.log

The store keeps no in-memory state between calls; every read goes back to
the file. A missing file is the same as an empty log.

Write paths:
- append():  one write() on an O_APPEND descriptor, so concurrent appenders
             never overwrite each other.
- rewrite(): write a sibling temp file, fsync, then os.replace() over the
             log, so readers see either the old or the new content in full.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from exceptions.exceptions import LogStoreError

from ..models.change_models import DecodedLine
from . import record_codec


logger = logging.getLogger(__name__)

_ENCODING = "utf-8"
# Undecodable bytes survive a read/rewrite cycle unchanged.
_ERRORS = "surrogateescape"


class LogStore:
    """Append-only change log with whole-file atomic rewrite.

    Parameters
    ----------
    path:
        Location of the log file. Parent directories are created on the
        first write.
    fsync:
        Flush writes to stable storage before returning (default True).
    """

    def __init__(self, path: Union[str, Path], fsync: bool = True) -> None:
        self.path = Path(path)
        self.fsync = fsync

    def exists(self) -> bool:
        return self.path.is_file()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(self, line: str) -> None:
        """Add one line at the end of the log.

        Raises
        ------
        ValueError
            If the line contains a line break.
        LogStoreError
            If the file cannot be opened or the write fails.
        """
        if "\n" in line or "\r" in line:
            raise ValueError("A log line must not contain line breaks")

        payload = (line + "\n").encode(_ENCODING, _ERRORS)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_RDWR | os.O_APPEND | os.O_CREAT, 0o644)
        except OSError as e:
            raise LogStoreError(self.path, "append", e) from e

        try:
            if self._has_torn_tail(fd):
                # Never glue a new record onto an unterminated last line.
                payload = b"\n" + payload
            written = os.write(fd, payload)
            if written != len(payload):
                raise LogStoreError(
                    self.path,
                    "append",
                    f"short write ({written} of {len(payload)} bytes)",
                )
            if self.fsync:
                os.fsync(fd)
        except OSError as e:
            raise LogStoreError(self.path, "append", e) from e
        finally:
            os.close(fd)

    def rewrite(self, lines: Iterable[str]) -> None:
        """Atomically replace the whole log with the given lines.

        An empty sequence leaves an existing, empty file behind.
        """
        lines = list(lines)
        for line in lines:
            if "\n" in line:
                raise ValueError("A log line must not contain a newline")

        content = "".join(line + "\n" for line in lines)
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=str(self.path.parent),
            )
            with os.fdopen(fd, "w", encoding=_ENCODING, errors=_ERRORS, newline="\n") as f:
                f.write(content)
                f.flush()
                if self.fsync:
                    os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise LogStoreError(self.path, "rewrite", e) from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning("[STORE] Could not remove temp file %s", tmp_path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_lines(self) -> List[str]:
        """Return every non-empty line in storage order (oldest first).

        Whitespace-only lines are returned like any other content.
        """
        try:
            with self.path.open("r", encoding=_ENCODING, errors=_ERRORS, newline="") as f:
                content = f.read()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise LogStoreError(self.path, "read", e) from e

        lines = []
        for line in content.split("\n"):
            if line:
                lines.append(line)
        return lines

    def read_all(self) -> List[Tuple[str, DecodedLine]]:
        """Return (line, decode(line)) pairs in storage order."""
        return [(line, record_codec.decode(line)) for line in self.read_lines()]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _has_torn_tail(fd: int) -> bool:
        size = os.fstat(fd).st_size
        if size == 0:
            return False
        os.lseek(fd, size - 1, os.SEEK_SET)
        return os.read(fd, 1) != b"\n"

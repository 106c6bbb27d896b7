"""LogService implementation.

Responsible for:
- validating and appending new change events
- answering "what changed in the last N days" with statistics
- pruning events older than N days

Every call goes back to the LogStore; nothing is cached between calls, so
each answer reflects the file as it is at read time.

Malformed lines are never returned as data and never removed: queries skip
them, pruning keeps them in place.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from exceptions.exceptions import ChangeValidationError

from ..models.change_models import (
    ChangeEventRecord,
    MalformedLine,
    PruneResult,
    QueryResult,
)
from ..store import record_codec
from ..store.log_store import LogStore
from .retention import is_within_window
from .statistics import aggregate


logger = logging.getLogger(__name__)

# (reported name, accepted input keys)
_REQUIRED_FIELDS = (
    ("timestamp", ("timestamp",)),
    ("url", ("url", "resourceUrl", "resource_url")),
    ("email", ("email", "notifyTarget", "notify_target")),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _describe_errors(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "record"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


class LogService:
    """Record, query and prune change events.

    Parameters
    ----------
    store:
        The LogStore holding the change log.
    default_window_days:
        Retention window used when a caller does not pass one.
    clock:
        Callable returning the current aware datetime. Defaults to UTC now.
    """

    def __init__(
        self,
        store: LogStore,
        default_window_days: float = 30,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.default_window_days = default_window_days
        self.clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Public API used by the HTTP routes and the CLI
    # ------------------------------------------------------------------

    def record_change(self, fields: Mapping[str, Any]) -> ChangeEventRecord:
        """Validate a candidate change event and append it to the log.

        Raises
        ------
        ChangeValidationError
            If timestamp, url or email is missing/empty, or a field holds a
            value that cannot be stored. Nothing is written in that case.
        LogStoreError
            If the append itself fails.
        """
        missing = [
            name
            for name, keys in _REQUIRED_FIELDS
            if not any(_is_present(fields.get(key)) for key in keys)
        ]
        if missing:
            raise ChangeValidationError(missing_fields=missing)

        try:
            record = ChangeEventRecord.model_validate(dict(fields))
        except ValidationError as e:
            raise ChangeValidationError(details=_describe_errors(e)) from e

        self.store.append(record_codec.encode(record))
        logger.info(
            "[LOGS] Recorded change for url=%s status=%s",
            record.resource_url,
            record.delivery_status.value,
        )
        return record

    def query_window(
        self,
        now: Optional[datetime] = None,
        window_days: Optional[float] = None,
    ) -> QueryResult:
        """Return records inside the window, newest first, with statistics.

        Pass window_days=float("inf") for the whole history.
        """
        now = now or self.clock()
        if window_days is None:
            window_days = self.default_window_days

        kept = []
        for _, decoded in self.store.read_all():
            if isinstance(decoded, MalformedLine):
                continue
            if is_within_window(decoded, now, window_days):
                kept.append(decoded)

        # sorted() is stable: equal timestamps stay in storage order.
        records = sorted(kept, key=lambda record: record.timestamp, reverse=True)
        return QueryResult(records=records, statistics=aggregate(records))

    def prune_window(
        self,
        now: Optional[datetime] = None,
        window_days: Optional[float] = None,
    ) -> PruneResult:
        """Drop records older than the window; keep malformed lines.

        A missing log is left missing and reported as nothing removed.
        """
        now = now or self.clock()
        if window_days is None:
            window_days = self.default_window_days

        if not self.store.exists():
            return PruneResult(removed_count=0, remaining_count=0)

        kept_lines = []
        removed = 0
        for line, decoded in self.store.read_all():
            if isinstance(decoded, ChangeEventRecord) and not is_within_window(
                decoded, now, window_days
            ):
                removed += 1
            else:
                kept_lines.append(line)

        if removed:
            self.store.rewrite(kept_lines)

        logger.info(
            "[LOGS] Pruned %d entries older than %s days (%d remaining)",
            removed,
            window_days,
            len(kept_lines),
        )
        return PruneResult(removed_count=removed, remaining_count=len(kept_lines))

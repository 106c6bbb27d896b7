"""HTTP routes for the change log.

Exposes:

- POST /api/save-log        -> append one change event
- GET  /api/get-logs?days=N -> events of the last N days + statistics
- POST /api/clear-old-logs  -> drop events older than N days ({"days": N})

N defaults to the configured retention window (30 days).
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException

from exceptions.exceptions import ChangeValidationError, LogStoreError

from ..models.api_models import (
    ClearLogsRequest,
    ClearLogsResponse,
    GetLogsResponse,
    SaveLogResponse,
)
from ..services.log_service import LogService
from ..services.retention import parse_days


logger = logging.getLogger(__name__)

# Router for all change-log endpoints
router = APIRouter()


# Module-level reference, to be initialized by the server.
_LOG_SERVICE: Optional[LogService] = None


def init_routes(log_service: LogService) -> None:
    """Initialize the module-level LogService used by the route handlers."""
    global _LOG_SERVICE
    _LOG_SERVICE = log_service


def _require_log_service() -> LogService:
    if _LOG_SERVICE is None:
        raise HTTPException(
            status_code=500,
            detail="LogService is not configured on the server.",
        )
    return _LOG_SERVICE


@router.post("/save-log", response_model=SaveLogResponse)
def save_log(fields: Any = Body(...)) -> SaveLogResponse:
    """Validate and append one change event."""
    service = _require_log_service()
    if not isinstance(fields, dict):
        raise ChangeValidationError(details="Request body must be a JSON object")
    try:
        entry = service.record_change(fields)
    except ChangeValidationError as e:
        logger.warning("[LOGS] Rejected change event: %s", e)
        raise
    except LogStoreError:
        logger.exception("[LOGS] Could not append change event for url=%r", fields.get("url"))
        raise
    return SaveLogResponse(message="Change logged successfully", entry=entry)


@router.get("/get-logs", response_model=GetLogsResponse)
def get_logs(days: Optional[str] = None) -> GetLogsResponse:
    """Return the change events of the last `days` days, newest first."""
    service = _require_log_service()
    window = parse_days(days, int(service.default_window_days))
    try:
        result = service.query_window(window_days=window)
    except LogStoreError:
        logger.exception("[LOGS] Could not read change log")
        raise

    count = len(result.records)
    return GetLogsResponse(
        logs=result.records,
        statistics=result.statistics,
        count=count,
        message=f"Retrieved {count} log entries from last {window} days",
    )


@router.post("/clear-old-logs", response_model=ClearLogsResponse)
def clear_old_logs(request: Optional[ClearLogsRequest] = None) -> ClearLogsResponse:
    """Remove change events older than `days` days; unreadable lines are kept."""
    service = _require_log_service()
    window = parse_days(
        request.days if request is not None else None,
        int(service.default_window_days),
    )
    try:
        result = service.prune_window(window_days=window)
    except LogStoreError:
        logger.exception("[LOGS] Could not prune change log")
        raise

    return ClearLogsResponse(
        message=f"Cleared {result.removed_count} old log entries",
        removed=result.removed_count,
        remaining=result.remaining_count,
    )

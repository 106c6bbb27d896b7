"""
HTTP request/response models for the URL Monitor runtime API.
"""

from pydantic import BaseModel, Field
from typing import Any, List, Optional

from .change_models import ChangeEventRecord, LogStatistics


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


# ---------------------------------------------------------------------------
# Change log
# ---------------------------------------------------------------------------


class SaveLogResponse(BaseModel):
    success: bool = True
    message: str
    entry: ChangeEventRecord


class GetLogsResponse(BaseModel):
    logs: List[ChangeEventRecord] = Field(default_factory=list)
    statistics: LogStatistics = Field(default_factory=LogStatistics)
    count: int = 0
    message: str


class ClearLogsRequest(BaseModel):
    # Kept loose: "30", 30 and garbage are all accepted, garbage -> default.
    days: Optional[Any] = None


class ClearLogsResponse(BaseModel):
    success: bool = True
    message: str
    removed: int = 0
    remaining: int = 0


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class CredentialFields(BaseModel):
    api_key: Optional[str] = None
    domain: Optional[str] = None
    smtp_server: Optional[str] = None
    smtp_port: Optional[int] = None
    smtp_email: Optional[str] = None
    smtp_password: Optional[str] = None


class SendEmailRequest(CredentialFields):
    """
    Required fields are Optional here so that a missing one produces the
    API's own 400 error instead of a schema 422.
    """
    email: Optional[str] = None
    url: Optional[str] = None
    service: Optional[str] = None
    lines_added: Optional[int] = None
    lines_removed: Optional[int] = None
    diff_preview: Optional[str] = None
    timestamp: Optional[str] = None


class SendEmailResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    service: Optional[str] = None
    error: Optional[str] = None


class TestEmailRequest(CredentialFields):
    email: Optional[str] = None
    service: Optional[str] = None


class TestEmailResponse(BaseModel):
    valid: bool
    message: Optional[str] = None
    service: Optional[str] = None
    email: Optional[str] = None
    error: Optional[str] = None

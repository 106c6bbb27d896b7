"""
Change-event models for the URL Monitor runtime.

These describe:
- ChangeEventRecord: one observed change of a monitored URL
- DeliveryStatus enum (pending, sent, failed)
- MalformedLine: a stored line that could not be decoded into a record
- LogStatistics / QueryResult / PruneResult returned by LogService

Field names are Pythonic; the wire keys written to the log file keep the
historical changes.log format (url, email, email_status, check_type...).
The camelCase names are accepted as aliases when reading.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Date and time of day are both required; epoch numbers and bare dates are not timestamps.
_ISO_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


# Keys whose null / empty values fall back to the field default.
_DEFAULTED_KEYS = frozenset(
    {
        "lines_added", "linesAdded",
        "lines_removed", "linesRemoved",
        "diff_preview", "diffPreview",
        "email_status", "deliveryStatus", "delivery_status",
        "check_type", "checkKind", "check_kind",
    }
)


class ChangeEventRecord(BaseModel):
    """One observed change of a monitored resource. Immutable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime
    resource_url: str = Field(
        validation_alias=AliasChoices("url", "resourceUrl", "resource_url"),
        serialization_alias="url",
    )
    notify_target: str = Field(
        validation_alias=AliasChoices("email", "notifyTarget", "notify_target"),
        serialization_alias="email",
    )
    lines_added: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("lines_added", "linesAdded"),
        serialization_alias="lines_added",
    )
    lines_removed: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("lines_removed", "linesRemoved"),
        serialization_alias="lines_removed",
    )
    diff_preview: str = Field(
        default="",
        validation_alias=AliasChoices("diff_preview", "diffPreview"),
        serialization_alias="diff_preview",
    )
    delivery_status: DeliveryStatus = Field(
        default=DeliveryStatus.PENDING,
        validation_alias=AliasChoices("email_status", "deliveryStatus", "delivery_status"),
        serialization_alias="email_status",
    )
    check_kind: str = Field(
        default="manual",
        validation_alias=AliasChoices("check_type", "checkKind", "check_kind"),
        serialization_alias="check_type",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_optionals(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: value
                for key, value in data.items()
                if not (key in _DEFAULTED_KEYS and (value is None or value == ""))
            }
        return data

    @field_validator("resource_url", "notify_target")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("timestamp", mode="before")
    @classmethod
    def _iso_only(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value
        if isinstance(value, str) and _ISO_DATETIME.match(value):
            return value
        raise ValueError("timestamp must be an ISO-8601 date-time string")

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are interpreted as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_wire(self) -> dict:
        """Return the JSON-ready dict using the log file's key names."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class MalformedLine:
    """A stored line that failed decoding. Carries the raw text verbatim."""

    raw: str


DecodedLine = Union[ChangeEventRecord, MalformedLine]


class LogStatistics(BaseModel):
    total_changes: int = 0
    sent_count: int = 0
    failed_count: int = 0
    pending_count: int = 0
    distinct_resource_count: int = 0
    oldest_timestamp: Optional[datetime] = None
    newest_timestamp: Optional[datetime] = None


class QueryResult(BaseModel):
    """Records in a retention window (newest first) plus their statistics."""

    records: List[ChangeEventRecord] = Field(default_factory=list)
    statistics: LogStatistics = Field(default_factory=LogStatistics)


class PruneResult(BaseModel):
    removed_count: int = 0
    remaining_count: int = 0

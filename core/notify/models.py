from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, model_validator


class ChangeNotification(BaseModel):
    """
    What a notification says about one change.

    Mirrors the change event fields a recipient cares about; timestamp
    is kept as given so the template can show it even if it is not ISO.
    """
    email: str
    url: str
    lines_added: int = 0
    lines_removed: int = 0
    diff_preview: str = ""
    timestamp: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _defaults_for_empty(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @property
    def total_changes(self) -> int:
        return self.lines_added + self.lines_removed


class ProviderCredentials(BaseModel):
    """Credentials for one delivery attempt. Which fields matter depends on the provider."""
    api_key: Optional[str] = None
    domain: Optional[str] = None
    smtp_server: Optional[str] = None
    smtp_port: Optional[int] = None
    smtp_email: Optional[str] = None
    smtp_password: Optional[str] = None


@dataclass
class RenderedEmail:
    recipient: str
    subject: str
    html: str
    text: str


@dataclass
class DeliveryResult:
    """Outcome of a single delivery attempt."""

    success: bool
    provider: str
    error: Optional[str] = None


@dataclass
class ProbeResult:
    """Outcome of a read-only credential check."""

    valid: bool
    message: str
    service: str
    email: str

"""
core.notify.providers

Delivery backends for change notifications.

Every provider exposes the same small interface (NotificationProvider):

    send(email, credentials)  -> None, raises NotificationError on failure
    probe(credentials)        -> (valid, message), read-only credential check

Providers make exactly one attempt per call and hold no state between calls
other than their configuration.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional, Protocol, Tuple

import httpx

from configs.settings import settings
from core.api.http_client import build_http_client
from exceptions.exceptions import MissingCredentialsError, NotificationError

from .models import ProviderCredentials, RenderedEmail


logger = logging.getLogger(__name__)


class NotificationProvider(Protocol):
    """Interface every delivery backend implements."""

    name: str

    def send(self, email: RenderedEmail, credentials: ProviderCredentials) -> None:
        ...

    def probe(self, credentials: ProviderCredentials) -> Tuple[bool, str]:
        ...


# ---------------------------------------------------------------------------
# HTTP API providers
# ---------------------------------------------------------------------------


class _HttpApiProvider:
    """Shared request plumbing for providers that talk to a REST API."""

    name = ""
    label = ""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ) -> None:
        self._client = client
        self.timeout = timeout
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        client = self._client or build_http_client(self.timeout)
        try:
            return client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise NotificationError(self.name, f"{self.label} request failed: {e}") from e
        finally:
            if self._client is None:
                client.close()

    def _require_api_key(self, credentials: ProviderCredentials) -> str:
        if not credentials.api_key:
            raise MissingCredentialsError(self.name, f"{self.label} API key is required")
        return credentials.api_key


class SendGridProvider(_HttpApiProvider):
    name = "sendgrid"
    label = "SendGrid"

    SEND_URL = "https://api.sendgrid.com/v3/mail/send"
    ACCOUNT_URL = "https://api.sendgrid.com/v3/user/account"

    def send(self, email: RenderedEmail, credentials: ProviderCredentials) -> None:
        api_key = self._require_api_key(credentials)
        body = {
            "personalizations": [{"to": [{"email": email.recipient}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": email.subject,
            "content": [
                {"type": "text/plain", "value": email.text},
                {"type": "text/html", "value": email.html},
            ],
        }
        response = self._request(
            "POST",
            self.SEND_URL,
            json=body,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        if not response.is_success:
            raise NotificationError(
                self.name,
                f"SendGrid API error: {response.status_code} - {response.text}",
            )

    def probe(self, credentials: ProviderCredentials) -> Tuple[bool, str]:
        api_key = self._require_api_key(credentials)
        response = self._request(
            "GET",
            self.ACCOUNT_URL,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        if response.is_success:
            return True, "SendGrid API key is valid!"
        return False, f"Invalid SendGrid API key. Status: {response.status_code}"


class MailgunProvider(_HttpApiProvider):
    name = "mailgun"
    label = "Mailgun"

    API_BASE = "https://api.mailgun.net/v3"

    def send(self, email: RenderedEmail, credentials: ProviderCredentials) -> None:
        api_key = self._require_api_key(credentials)
        if not credentials.domain:
            raise MissingCredentialsError(self.name, "Mailgun domain is required")

        response = self._request(
            "POST",
            f"{self.API_BASE}/{credentials.domain}/messages",
            auth=("api", api_key),
            data={
                "from": f"{self.from_name} <noreply@{credentials.domain}>",
                "to": email.recipient,
                "subject": email.subject,
                "text": email.text,
                "html": email.html,
            },
        )
        if not response.is_success:
            raise NotificationError(
                self.name,
                f"Mailgun API error: {response.status_code} - {response.text}",
            )

    def probe(self, credentials: ProviderCredentials) -> Tuple[bool, str]:
        api_key = self._require_api_key(credentials)
        response = self._request(
            "GET",
            f"{self.API_BASE}/domains",
            auth=("api", api_key),
        )
        if response.is_success:
            return True, "Mailgun API key is valid!"
        return False, f"Invalid Mailgun API key. Status: {response.status_code}"


# ---------------------------------------------------------------------------
# SMTP
# ---------------------------------------------------------------------------


class SmtpProvider:
    """Generic SMTP relay. Port 465 uses implicit TLS, anything else STARTTLS when offered."""

    name = "smtp"
    DEFAULT_PORT = 587

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = settings.fetch_timeout if timeout is None else timeout

    def _connect(self, credentials: ProviderCredentials) -> smtplib.SMTP:
        if not (credentials.smtp_server and credentials.smtp_email and credentials.smtp_password):
            raise MissingCredentialsError(
                self.name,
                "SMTP server, email and password are required",
            )
        port = credentials.smtp_port or self.DEFAULT_PORT
        context = ssl.create_default_context()
        if port == 465:
            smtp = smtplib.SMTP_SSL(
                credentials.smtp_server, port, timeout=self.timeout, context=context
            )
        else:
            smtp = smtplib.SMTP(credentials.smtp_server, port, timeout=self.timeout)
            smtp.ehlo()
            if smtp.has_extn("starttls"):
                smtp.starttls(context=context)
                smtp.ehlo()
        try:
            smtp.login(credentials.smtp_email, credentials.smtp_password)
        except (smtplib.SMTPException, OSError):
            smtp.close()
            raise
        return smtp

    def send(self, email: RenderedEmail, credentials: ProviderCredentials) -> None:
        message = EmailMessage()
        message["Subject"] = email.subject
        message["From"] = credentials.smtp_email or ""
        message["To"] = email.recipient
        message.set_content(email.text)
        message.add_alternative(email.html, subtype="html")

        try:
            smtp = self._connect(credentials)
            try:
                smtp.send_message(message)
            finally:
                smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(self.name, f"SMTP error: {e}") from e

    def probe(self, credentials: ProviderCredentials) -> Tuple[bool, str]:
        try:
            smtp = self._connect(credentials)
        except smtplib.SMTPAuthenticationError as e:
            return False, f"Invalid SMTP credentials. Code: {e.smtp_code}"
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(self.name, f"SMTP error: {e}") from e
        smtp.quit()
        return True, "SMTP credentials are valid!"

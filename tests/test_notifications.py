"""
Tests for the notification collaborator: template rendering, provider
registry, HTTP API providers, SMTP provider, dispatcher and probe.
"""

from __future__ import annotations

import json
import smtplib
from typing import List
from urllib.parse import parse_qs

import httpx
import pytest

from core.notify.dispatcher import NotificationDispatcher, NotificationProbe
from core.notify.models import ChangeNotification, ProviderCredentials
from core.notify.providers import MailgunProvider, SendGridProvider, SmtpProvider
from core.notify.registry import ProviderRegistry, default_registry
from core.notify.templates import render_change_email
from exceptions.exceptions import (
    ChangeValidationError,
    MissingCredentialsError,
    NotificationError,
    UnknownProviderError,
)


def _notification(**overrides) -> ChangeNotification:
    fields = {
        "email": "ops@example.com",
        "url": "https://docs.example.com/page.html",
        "lines_added": 3,
        "lines_removed": 1,
        "diff_preview": "+ <b>new</b>\n- old",
        "timestamp": "2024-01-20T10:00:00Z",
    }
    fields.update(overrides)
    return ChangeNotification(**fields)


class Recorder:
    """MockTransport handler that records requests and replies with a fixed status."""

    def __init__(self, status: int = 200, text: str = "{}") -> None:
        self.status = status
        self.text = text
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, text=self.text)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------


def test_render_change_email() -> None:
    email = render_change_email(_notification())

    assert email.recipient == "ops@example.com"
    assert email.subject == "URL Change Detected: docs.example.com"
    assert "+3" in email.html and "-1" in email.html
    assert ">4<" in email.html
    assert "&lt;b&gt;new&lt;/b&gt;" in email.html
    assert "<b>new</b>" not in email.html
    assert "2024-01-20 10:00:00" in email.html
    assert "https://docs.example.com/page.html" in email.text


def test_render_without_preview_or_timestamp() -> None:
    email = render_change_email(_notification(diff_preview="", timestamp=None))

    assert "Change Preview" not in email.html
    assert "unknown" in email.html


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_default_registry_has_builtin_providers() -> None:
    registry = default_registry()

    assert registry.names() == ["mailgun", "sendgrid", "smtp"]
    assert registry.get("SendGrid").name == "sendgrid"


def test_registry_rejects_duplicates_and_unknown_names() -> None:
    registry = ProviderRegistry([SmtpProvider()])

    with pytest.raises(ValueError):
        registry.register(SmtpProvider())
    registry.register(SmtpProvider(timeout=1), replace=True)

    with pytest.raises(UnknownProviderError) as excinfo:
        registry.get("pigeon")
    assert excinfo.value.known == ["smtp"]


# ---------------------------------------------------------------------------
# SendGrid / Mailgun
# ---------------------------------------------------------------------------


def test_sendgrid_send_builds_api_request() -> None:
    recorder = Recorder(status=202)
    provider = SendGridProvider(client=recorder.client(), from_email="alerts@example.com")

    provider.send(render_change_email(_notification()), ProviderCredentials(api_key="SG.key"))

    request = recorder.requests[0]
    assert str(request.url) == "https://api.sendgrid.com/v3/mail/send"
    assert request.headers["authorization"] == "Bearer SG.key"
    body = json.loads(request.content)
    assert body["personalizations"][0]["to"] == [{"email": "ops@example.com"}]
    assert body["from"]["email"] == "alerts@example.com"
    assert body["subject"] == "URL Change Detected: docs.example.com"


def test_sendgrid_error_status_raises() -> None:
    provider = SendGridProvider(client=Recorder(status=401, text="bad key").client())

    with pytest.raises(NotificationError) as excinfo:
        provider.send(render_change_email(_notification()), ProviderCredentials(api_key="x"))

    assert excinfo.value.details == "SendGrid API error: 401 - bad key"


def test_mailgun_send_posts_form_to_domain() -> None:
    recorder = Recorder()
    provider = MailgunProvider(client=recorder.client())

    provider.send(
        render_change_email(_notification()),
        ProviderCredentials(api_key="key-123", domain="mg.example.com"),
    )

    request = recorder.requests[0]
    assert str(request.url) == "https://api.mailgun.net/v3/mg.example.com/messages"
    assert request.headers["authorization"].startswith("Basic ")
    form = parse_qs(request.content.decode())
    assert form["to"] == ["ops@example.com"]
    assert form["from"] == ["URL Monitor <noreply@mg.example.com>"]


def test_mailgun_requires_domain_before_any_request() -> None:
    recorder = Recorder()
    provider = MailgunProvider(client=recorder.client())

    with pytest.raises(MissingCredentialsError):
        provider.send(render_change_email(_notification()), ProviderCredentials(api_key="k"))

    assert recorder.requests == []


@pytest.mark.parametrize(
    "provider_cls, status, expected",
    [
        (SendGridProvider, 200, (True, "SendGrid API key is valid!")),
        (SendGridProvider, 403, (False, "Invalid SendGrid API key. Status: 403")),
        (MailgunProvider, 200, (True, "Mailgun API key is valid!")),
        (MailgunProvider, 401, (False, "Invalid Mailgun API key. Status: 401")),
    ],
)
def test_http_provider_probe(provider_cls, status, expected) -> None:
    recorder = Recorder(status=status)
    provider = provider_cls(client=recorder.client())

    assert provider.probe(ProviderCredentials(api_key="k")) == expected
    assert recorder.requests[0].method == "GET"


def test_transport_failure_becomes_notification_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    provider = SendGridProvider(client=httpx.Client(transport=httpx.MockTransport(handler)))

    with pytest.raises(NotificationError) as excinfo:
        provider.send(render_change_email(_notification()), ProviderCredentials(api_key="k"))

    assert "SendGrid request failed" in excinfo.value.details


# ---------------------------------------------------------------------------
# SMTP
# ---------------------------------------------------------------------------


class FakeSMTP:
    instances: List["FakeSMTP"] = []
    reject_login = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.messages = []
        self.started_tls = False
        self.closed = False
        FakeSMTP.instances.append(self)

    def ehlo(self):
        return 250, b"ok"

    def has_extn(self, name):
        return name == "starttls"

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, user, password):
        if FakeSMTP.reject_login:
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")
        self.user = user

    def send_message(self, message):
        self.messages.append(message)

    def quit(self):
        self.closed = True

    def close(self):
        self.closed = True


@pytest.fixture
def fake_smtp(monkeypatch: pytest.MonkeyPatch):
    FakeSMTP.instances = []
    FakeSMTP.reject_login = False
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


SMTP_CREDENTIALS = ProviderCredentials(
    smtp_server="smtp.example.com",
    smtp_email="monitor@example.com",
    smtp_password="secret",
)


def test_smtp_send_uses_starttls_and_sends_multipart(fake_smtp) -> None:
    SmtpProvider().send(render_change_email(_notification()), SMTP_CREDENTIALS)

    smtp = fake_smtp.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.example.com", 587)
    assert smtp.started_tls
    assert smtp.closed
    message = smtp.messages[0]
    assert message["To"] == "ops@example.com"
    assert message["From"] == "monitor@example.com"
    assert message.is_multipart()


def test_smtp_requires_credentials(fake_smtp) -> None:
    with pytest.raises(MissingCredentialsError):
        SmtpProvider().send(render_change_email(_notification()), ProviderCredentials())

    assert fake_smtp.instances == []


def test_smtp_login_failure(fake_smtp) -> None:
    fake_smtp.reject_login = True

    with pytest.raises(NotificationError):
        SmtpProvider().send(render_change_email(_notification()), SMTP_CREDENTIALS)
    assert SmtpProvider().probe(SMTP_CREDENTIALS) == (False, "Invalid SMTP credentials. Code: 535")


# ---------------------------------------------------------------------------
# Dispatcher / probe
# ---------------------------------------------------------------------------


def test_dispatcher_delivers_through_registered_provider() -> None:
    recorder = Recorder(status=202)
    dispatcher = NotificationDispatcher(ProviderRegistry([SendGridProvider(client=recorder.client())]))

    result = dispatcher.dispatch(_notification(), "sendgrid", ProviderCredentials(api_key="k"))

    assert result.success
    assert result.provider == "sendgrid"
    assert len(recorder.requests) == 1


def test_dispatcher_reports_provider_failure_without_retry() -> None:
    recorder = Recorder(status=500, text="boom")
    dispatcher = NotificationDispatcher(ProviderRegistry([SendGridProvider(client=recorder.client())]))

    result = dispatcher.dispatch(_notification(), "sendgrid", ProviderCredentials(api_key="k"))

    assert not result.success
    assert result.error == "SendGrid API error: 500 - boom"
    assert len(recorder.requests) == 1


def test_dispatcher_validates_before_delivery() -> None:
    dispatcher = NotificationDispatcher(ProviderRegistry([SmtpProvider()]))

    with pytest.raises(ChangeValidationError):
        dispatcher.dispatch(_notification(email="nobody"), "smtp")
    with pytest.raises(UnknownProviderError):
        dispatcher.dispatch(_notification(), "pigeon")


def test_probe_reports_missing_credentials_as_invalid() -> None:
    probe = NotificationProbe(ProviderRegistry([MailgunProvider(client=Recorder().client())]))

    result = probe.probe("ops@example.com", "mailgun", ProviderCredentials())

    assert not result.valid
    assert result.message == "Mailgun API key is required"
    assert result.service == "mailgun"

"""
core.notify.dispatcher

NotificationDispatcher: render a change notification and hand it to the
selected provider, once.

NotificationProbe: ask a provider whether a set of credentials works,
without sending anything.

Neither class keeps state between calls.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from exceptions.exceptions import (
    ChangeValidationError,
    MissingCredentialsError,
    NotificationError,
    UnknownProviderError,
)

from .models import ChangeNotification, DeliveryResult, ProbeResult, ProviderCredentials
from .registry import ProviderRegistry, default_registry
from .templates import render_change_email


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_email(email: Optional[str]) -> None:
    if not email or not EMAIL_PATTERN.match(email):
        raise ChangeValidationError(details="Invalid email address")


class NotificationDispatcher:
    """Deliver change notifications through a registry of providers."""

    def __init__(self, registry: Optional[ProviderRegistry] = None) -> None:
        self.registry = registry or default_registry()

    def dispatch(
        self,
        notification: ChangeNotification,
        provider: str,
        credentials: Optional[ProviderCredentials] = None,
    ) -> DeliveryResult:
        """Make one delivery attempt.

        Raises
        ------
        ChangeValidationError
            If the recipient address is not a valid email address.
        UnknownProviderError
            If no provider is registered under the given name.

        Provider-side failures are returned as DeliveryResult(success=False).
        """
        validate_email(notification.email)
        backend = self.registry.get(provider)
        email = render_change_email(notification)

        try:
            backend.send(email, credentials or ProviderCredentials())
        except NotificationError as e:
            logger.warning(
                "[NOTIFY] Delivery via %s to %s failed: %s",
                backend.name,
                notification.email,
                e.details,
            )
            return DeliveryResult(success=False, provider=backend.name, error=e.details)

        logger.info("[NOTIFY] Sent change notification via %s to %s", backend.name, notification.email)
        return DeliveryResult(success=True, provider=backend.name)


class NotificationProbe:
    """Read-only credential validation against a provider."""

    def __init__(self, registry: Optional[ProviderRegistry] = None) -> None:
        self.registry = registry or default_registry()

    def probe(
        self,
        email: str,
        provider: str,
        credentials: Optional[ProviderCredentials] = None,
    ) -> ProbeResult:
        """Check credentials for provider.

        An unknown provider is reported as invalid rather than raised.
        Transport failures raise NotificationError.
        """
        validate_email(email)
        try:
            backend = self.registry.get(provider)
        except UnknownProviderError as e:
            return ProbeResult(valid=False, message=str(e), service=provider, email=email)

        try:
            valid, message = backend.probe(credentials or ProviderCredentials())
        except MissingCredentialsError as e:
            return ProbeResult(valid=False, message=e.details, service=provider, email=email)
        return ProbeResult(valid=valid, message=message, service=provider, email=email)

"""Lookup of notification providers by service name.

New providers are added by registering them; the dispatcher never branches
on provider names itself.
"""

from typing import Dict, Iterable, List, Optional

import httpx

from exceptions.exceptions import UnknownProviderError

from .providers import MailgunProvider, NotificationProvider, SendGridProvider, SmtpProvider


class ProviderRegistry:
    def __init__(self, providers: Iterable[NotificationProvider] = ()) -> None:
        self._providers: Dict[str, NotificationProvider] = {}
        for provider in providers:
            self.register(provider)

    @staticmethod
    def _key(name: str) -> str:
        return (name or "").strip().lower()

    def register(self, provider: NotificationProvider, replace: bool = False) -> None:
        key = self._key(provider.name)
        if key in self._providers and not replace:
            raise ValueError(f"Provider already registered: {provider.name}")
        self._providers[key] = provider

    def get(self, name: str) -> NotificationProvider:
        """Return the provider for name, or raise UnknownProviderError."""
        provider = self._providers.get(self._key(name))
        if provider is None:
            raise UnknownProviderError(name, known=self.names())
        return provider

    def names(self) -> List[str]:
        return sorted(self._providers)


def default_registry(client: Optional[httpx.Client] = None) -> ProviderRegistry:
    """Registry with the built-in SendGrid, Mailgun and SMTP providers."""
    return ProviderRegistry(
        [
            SendGridProvider(client=client),
            MailgunProvider(client=client),
            SmtpProvider(),
        ]
    )

"""
Custom exceptions for the URL Monitor log service and its collaborators.

These exceptions are intentionally simple and descriptive.
They are used across:

  - runtime/store/ and runtime/services/
  - core/api/ (fetch proxy)
  - core/notify/ (notification providers)
  - runtime/api/ and cli/ (mapped to HTTP statuses / exit codes)

Placing them at the project root (exceptions/) avoids circular imports and
keeps exception types consistent across modules.

Note that malformed log lines are NOT errors: they are returned as
MalformedLine values by the record codec and never raised.
"""


class ChangeValidationError(Exception):
    """
    Raised when a change event cannot be accepted for append, or when a
    notification request is missing required data.

    This is a caller error: it is never retried and happens before any
    durable write.
    """

    def __init__(self, missing_fields=None, details=None):
        self.missing_fields = list(missing_fields or [])
        self.details = details
        if self.missing_fields:
            msg = "Missing required fields: " + ", ".join(self.missing_fields)
            if details:
                msg = f"{msg} ({details})"
        else:
            msg = details or "Invalid change event."
        super().__init__(msg)


class LogStoreError(Exception):
    """
    Raised when the underlying log file cannot be read or written.

    A failed append adds no record; a failed rewrite leaves the previous
    file content in place.
    """

    def __init__(self, path, operation, cause=None):
        self.path = path
        self.operation = operation
        self.cause = cause
        msg = f"Log store {operation} failed for {path}"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)


class UnsupportedUrlError(Exception):
    """Raised when a fetch is requested for a URL that is not http(s)."""

    def __init__(self, url):
        self.url = url
        super().__init__(
            "Invalid URL format. Must start with http:// or https://"
        )


class FetchError(Exception):
    """
    Raised when the upstream resource could not be retrieved.

    status_code is the upstream HTTP status, or None when the request never
    produced a response (DNS failure, timeout, refused connection...).
    """

    def __init__(self, url, status_code=None, reason=None):
        self.url = url
        self.status_code = status_code
        self.reason = reason or ""
        if status_code is not None:
            msg = f"Server returned status {status_code}"
        else:
            msg = f"Failed to fetch URL: {self.reason}"
        super().__init__(msg)


class UnknownProviderError(Exception):
    """Raised when no notification provider is registered under a name."""

    def __init__(self, provider, known=None):
        self.provider = provider
        self.known = sorted(known or [])
        super().__init__("Unknown email service")


class NotificationError(Exception):
    """
    Raised by a notification provider when a single delivery attempt fails.

    The dispatcher converts it into a failed DeliveryResult; it does not
    retry.
    """

    def __init__(self, provider, details):
        self.provider = provider
        self.details = details
        super().__init__(details)


class MissingCredentialsError(NotificationError):
    """Raised by a provider before any network call when credentials are incomplete."""

"""HTTP routes for the side-effect collaborators.

- GET  /api/fetch-url?url=... -> raw text of a remote http(s) resource
- POST /api/send-email        -> one notification delivery attempt
- POST /api/test-email        -> read-only provider credential check

None of these touch the change log.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse

from core.api.fetch_proxy import FetchProxy
from core.notify.dispatcher import NotificationDispatcher, NotificationProbe
from core.notify.models import ChangeNotification, ProviderCredentials
from exceptions.exceptions import (
    ChangeValidationError,
    FetchError,
    NotificationError,
    UnsupportedUrlError,
)

from ..models.api_models import (
    CredentialFields,
    SendEmailRequest,
    SendEmailResponse,
    TestEmailRequest,
    TestEmailResponse,
)


logger = logging.getLogger(__name__)

router = APIRouter()


# Module-level references, to be initialized by the server.
_FETCH_PROXY: Optional[FetchProxy] = None
_DISPATCHER: Optional[NotificationDispatcher] = None
_PROBE: Optional[NotificationProbe] = None


def init_routes(
    fetch_proxy: FetchProxy,
    dispatcher: NotificationDispatcher,
    probe: NotificationProbe,
) -> None:
    """Initialize module-level collaborators used by the route handlers."""
    global _FETCH_PROXY, _DISPATCHER, _PROBE
    _FETCH_PROXY = fetch_proxy
    _DISPATCHER = dispatcher
    _PROBE = probe


def _require(component, name: str):
    if component is None:
        raise HTTPException(
            status_code=500,
            detail=f"{name} is not configured on the server.",
        )
    return component


def _credentials(request: CredentialFields) -> ProviderCredentials:
    return ProviderCredentials(
        api_key=request.api_key,
        domain=request.domain,
        smtp_server=request.smtp_server,
        smtp_port=request.smtp_port,
        smtp_email=request.smtp_email,
        smtp_password=request.smtp_password,
    )


# --------------------------------------------------------
# Endpoint: GET /api/fetch-url
# --------------------------------------------------------
@router.get("/fetch-url")
def fetch_url(url: Optional[str] = None):
    """Proxy a GET to `url` and return its body as plain text."""
    proxy = _require(_FETCH_PROXY, "FetchProxy")

    if not url:
        return JSONResponse(
            status_code=400,
            content={
                "error": "URL parameter is required",
                "example": "/api/fetch-url?url=https://example.com/file.txt",
            },
        )

    try:
        result = proxy.fetch(url)
    except UnsupportedUrlError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except FetchError as e:
        if e.status_code is not None:
            return JSONResponse(
                status_code=e.status_code,
                content={"error": str(e), "url": url, "status_text": e.reason},
            )
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch URL", "details": e.reason, "url": url},
        )

    return PlainTextResponse(
        result.text,
        headers={"Cache-Control": "no-cache"},
    )


# --------------------------------------------------------
# Endpoint: POST /api/send-email
# --------------------------------------------------------
@router.post("/send-email", response_model=SendEmailResponse, response_model_exclude_none=True)
def send_email(request: SendEmailRequest):
    """Send one change notification through the selected provider."""
    dispatcher = _require(_DISPATCHER, "NotificationDispatcher")

    if not (request.email and request.url and request.service):
        raise ChangeValidationError(details="Email, URL, and service are required")

    notification = ChangeNotification(
        email=request.email,
        url=request.url,
        lines_added=request.lines_added,
        lines_removed=request.lines_removed,
        diff_preview=request.diff_preview,
        timestamp=request.timestamp,
    )
    result = dispatcher.dispatch(notification, request.service, _credentials(request))

    if not result.success:
        return JSONResponse(
            status_code=500,
            content=SendEmailResponse(success=False, error=result.error).model_dump(
                exclude_none=True
            ),
        )
    return SendEmailResponse(
        success=True,
        message="Email sent successfully",
        service=result.provider,
    )


# --------------------------------------------------------
# Endpoint: POST /api/test-email
# --------------------------------------------------------
@router.post("/test-email", response_model=TestEmailResponse, response_model_exclude_none=True)
def test_email(request: TestEmailRequest):
    """Check provider credentials without sending anything."""
    probe = _require(_PROBE, "NotificationProbe")

    if not (request.email and request.service):
        return JSONResponse(
            status_code=400,
            content={"valid": False, "error": "Email and service are required"},
        )

    try:
        result = probe.probe(request.email, request.service, _credentials(request))
    except ChangeValidationError:
        return JSONResponse(
            status_code=400,
            content={"valid": False, "error": "Invalid email address format"},
        )
    except NotificationError as e:
        logger.warning("[NOTIFY] Credential probe for %s failed: %s", request.service, e)
        return JSONResponse(status_code=500, content={"valid": False, "error": str(e)})

    return TestEmailResponse(
        valid=result.valid,
        message=result.message,
        service=result.service,
        email=result.email,
    )


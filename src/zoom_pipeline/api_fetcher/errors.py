from __future__ import annotations

import json
import logging
import warnings
from typing import Optional


logger = logging.getLogger(__name__)

STATUS_REFERENCE_URL = "https://developer.mozilla.org/en-US/docs/Web/HTTP/Status"
ISSUE_TRACKER_URL = "https://github.com/chrisumphlett/zoomr/issues"

# HTTP statuses and Zoom body codes share one table; Zoom's own codes
# (300, 3001, 4700) only ever arrive in the JSON body.
KNOWN_CAUSES = {
    300: "Zoom API reported an invalid request (300): the next page token is invalid or expired.",
    400: "Zoom API reported an invalid request: Bad Request.",
    401: "Zoom API reported an invalid access token (401).",
    404: "Zoom API reported the webinar/meeting id is not found or has expired (404).",
    3001: "Zoom API reported an invalid request (3001): Meeting/Webinar ID does not exist.",
    4700: (
        "Zoom API reported an authentication error (4700): your access token does not "
        "contain permission to access the requested API endpoint scopes."
    ),
}


class ZoomAPIError(RuntimeError):
    """Base error for zoom_pipeline failures."""


class ConfigurationError(ZoomAPIError):
    """Raised for programming or caller errors detected before any network call."""


class AuthError(ZoomAPIError):
    """Raised when the OAuth credential exchange is rejected."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(ZoomAPIError):
    """Raised when a resource call fails (HTTP errors, timeouts, invalid JSON)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyResultNotice(UserWarning):
    """Issued when an expected collection is legitimately empty."""


def _body_code(body: str) -> Optional[int]:
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        return None
    if isinstance(payload, dict) and isinstance(payload.get("code"), int):
        return payload["code"]
    return None


def describe_status(status_code: int, body: str = "") -> str:
    """
    Build a human-readable diagnostic for a failed Zoom call.

    Zoom body codes are checked first since they are more specific than the
    HTTP status they ride on.
    """
    code = _body_code(body)
    if code in KNOWN_CAUSES:
        return f"{KNOWN_CAUSES[code]} (HTTP {status_code})"
    if status_code in KNOWN_CAUSES:
        return KNOWN_CAUSES[status_code]

    return (
        f"Zoom API reported an atypical status code {status_code}. "
        f"Full response: {body} "
        f"A dictionary of status codes can be found here: {STATUS_REFERENCE_URL} "
        f"Please check your request, and report it at {ISSUE_TRACKER_URL} if reoccurring."
    )


def notify_empty(message: str) -> None:
    """Report a non-fatal empty result through logging and the warnings channel."""
    logger.info(message)
    warnings.warn(message, EmptyResultNotice, stacklevel=3)

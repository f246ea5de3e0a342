from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .client_base import BaseAPIClient, APIClientError, APIClientHTTPError
from .errors import UpstreamError, describe_status, notify_empty
from .schema import PageEnvelope


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 300
MAX_PAGE_SIZE = 300

# Cursor value meaning "no more pages"; never sent to the API.
END_OF_PAGES = object()


def _bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _get(client: BaseAPIClient, url: str, token: str, params: Optional[Dict[str, Any]]) -> str:
    try:
        return client.get_text(url, params=params, headers=_bearer(token))
    except APIClientHTTPError as e:
        raise UpstreamError(
            describe_status(e.status_code, e.body), status_code=e.status_code
        ) from e
    except APIClientError as e:
        raise UpstreamError(f"Zoom request failed: {e}") from e


def _envelope(body: str, url: str) -> PageEnvelope:
    try:
        return PageEnvelope.model_validate_json(body)
    except ValidationError as e:
        raise UpstreamError(f"Unexpected page shape returned from {url}") from e


def fetch_page(
    client: BaseAPIClient,
    url: str,
    token: str,
    params: Optional[Dict[str, Any]] = None,
) -> str:
    """Single GET for endpoints that answer in one response."""
    return _get(client, url, token, params)


def fetch_all(
    client: BaseAPIClient,
    url: str,
    token: str,
    params: Optional[Dict[str, Any]] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    stop_on_empty: bool = False,
    empty_message: str = "Zoom id is found but there are not any records",
) -> List[str]:
    """
    Walk Zoom's ``next_page_token`` cursor and return every raw page body.

    Pages are returned in arrival order. A missing or empty
    ``next_page_token`` ends the walk. With ``stop_on_empty`` a first page
    reporting ``total_records == 0`` ends the walk with no pages.
    """
    pages: List[str] = []
    cursor: Any = ""

    while cursor is not END_OF_PAGES:
        query = {"page_size": page_size, "next_page_token": cursor}
        if params:
            query.update(params)

        body = _get(client, url, token, query)
        envelope = _envelope(body, url)

        if stop_on_empty and not pages and envelope.total_records == 0:
            notify_empty(empty_message)
            return []

        cursor = END_OF_PAGES if envelope.is_last else envelope.next_page_token
        pages.append(body)
        logger.debug("Fetched page %d from %s", len(pages), url)

    logger.info("Fetched %d page(s) from %s", len(pages), url)
    return pages

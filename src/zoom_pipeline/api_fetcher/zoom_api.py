from __future__ import annotations

import os
import logging
from typing import Callable, List, Optional
from urllib.parse import urlparse

import pandas as pd
from pydantic import ValidationError

from .auth import DEFAULT_TOKEN_URL, acquire_token
from .client_base import BaseAPIClient
from .endpoints import DEFAULT_ROOT_URL, resolve
from .errors import ConfigurationError, UpstreamError
from .expander import RecurringMeetingExpander
from .normalizer import normalize
from .pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, fetch_all, fetch_page
from .schema import Occurrence, OccurrenceListing
from .shapers import (
    filter_lookback,
    label_meeting_types,
    shape_detail,
    shape_question_report,
    shape_registrants,
    shape_registration_questions,
    shape_tracking_sources,
)


logger = logging.getLogger(__name__)

# Listings only keep resources that started within this window.
LOOKBACK_DAYS = 365

MEETING_LIST_TYPES = ("scheduled", "live", "upcoming", "upcoming_meetings", "previous_meetings")

NO_REGISTRANTS_MESSAGE = "Webinar Id is found but there are not any registrants"

TokenProvider = Callable[[str, str, str], str]


def _env_number(name: str, default, cast):
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'.") from e


def _validate_url(name: str, url: str) -> str:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigurationError(f"{name} is not a valid URL: '{url}'")
    return url


def _validate_page_size(page_size: int) -> int:
    if isinstance(page_size, bool) or not isinstance(page_size, int) or not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ConfigurationError(
            f"page_size must be an integer between 1 and {MAX_PAGE_SIZE}, got {page_size!r}."
        )
    return page_size


class ZoomReportsClient(BaseAPIClient):
    """
    Client for Zoom's reporting endpoints, returning pandas Record Sets.

    Every public method takes the Server-to-Server OAuth app credentials and
    acquires a fresh token for that call only. Argument validation happens
    before any network call.

    Optional environment overrides:

        ZOOM_API_BASE_URL     - API root (default: https://api.zoom.us/v2)
        ZOOM_OAUTH_TOKEN_URL  - OAuth token endpoint (default: https://zoom.us/oauth/token)
        ZOOM_TIMEOUT_SEC      - Request timeout (default: 15)
        ZOOM_MAX_RETRIES      - Retries for transient server errors (default: 3)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        token_provider: Optional[TokenProvider] = None,
    ) -> None:
        self.root_url = _validate_url(
            "ZOOM_API_BASE_URL", base_url or os.getenv("ZOOM_API_BASE_URL") or DEFAULT_ROOT_URL
        ).rstrip("/")
        self.token_url = _validate_url(
            "ZOOM_OAUTH_TOKEN_URL", token_url or os.getenv("ZOOM_OAUTH_TOKEN_URL") or DEFAULT_TOKEN_URL
        )

        timeout_sec = timeout if timeout is not None else _env_number("ZOOM_TIMEOUT_SEC", 15.0, float)
        if timeout_sec <= 0:
            raise ConfigurationError(f"ZOOM_TIMEOUT_SEC must be positive, got {timeout_sec}.")

        max_retries = retries if retries is not None else _env_number("ZOOM_MAX_RETRIES", 3, int)
        if max_retries < 0:
            raise ConfigurationError(f"ZOOM_MAX_RETRIES must not be negative, got {max_retries}.")

        super().__init__(base_url=self.root_url, timeout=timeout_sec, retries=max_retries)

        self.token_provider: TokenProvider = token_provider or self._exchange_token
        logger.debug("ZoomReportsClient initialized for %s", self.root_url)

    # -------------------------------------------------
    # Plumbing
    # -------------------------------------------------
    def _exchange_token(self, account_id: str, client_id: str, client_secret: str) -> str:
        return acquire_token(account_id, client_id, client_secret, client=self, token_url=self.token_url)

    def _url(self, operation: str, **path_params: str) -> str:
        return resolve(operation, root_url=self.root_url, **path_params)

    def _token(self, account_id: str, client_id: str, client_secret: str) -> str:
        return self.token_provider(account_id, client_id, client_secret)

    # -------------------------------------------------
    # Users and listings
    # -------------------------------------------------
    def list_users(
        self,
        account_id: str,
        client_id: str,
        client_secret: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> pd.DataFrame:
        """All users on the account."""
        _validate_page_size(page_size)
        url = self._url("getusers")
        token = self._token(account_id, client_id, client_secret)

        pages = fetch_all(self, url, token, page_size=page_size)
        return normalize(pages, "users")

    def list_webinars(
        self,
        user_id: str,
        account_id: str,
        client_id: str,
        client_secret: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        lookback_days: int = LOOKBACK_DAYS,
    ) -> pd.DataFrame:
        """Webinars hosted by ``user_id`` that started within the lookback window."""
        _validate_page_size(page_size)
        url = self._url("listwebinars", user_id=user_id)
        token = self._token(account_id, client_id, client_secret)

        pages = fetch_all(self, url, token, page_size=page_size)
        return filter_lookback(normalize(pages, "webinars"), "webinars_start_time", lookback_days)

    def list_meetings(
        self,
        user_id: str,
        account_id: str,
        client_id: str,
        client_secret: str,
        meeting_type: str = "previous_meetings",
        page_size: int = DEFAULT_PAGE_SIZE,
        lookback_days: int = LOOKBACK_DAYS,
    ) -> pd.DataFrame:
        """
        Meetings hosted by ``user_id``; used to find meeting ids and UUIDs.

        ``meeting_type`` is one of "scheduled", "live", "upcoming",
        "upcoming_meetings" or "previous_meetings".
        """
        if meeting_type not in MEETING_LIST_TYPES:
            raise ConfigurationError(
                f"meeting_type must be one of {', '.join(MEETING_LIST_TYPES)}, got '{meeting_type}'."
            )
        _validate_page_size(page_size)
        url = self._url("listmeetings", user_id=user_id)
        token = self._token(account_id, client_id, client_secret)

        pages = fetch_all(self, url, token, params={"type": meeting_type}, page_size=page_size)
        df = label_meeting_types(normalize(pages, "meetings"), "meetings_type")
        return filter_lookback(df, "meetings_start_time", lookback_days)

    # -------------------------------------------------
    # Detail lookups
    # -------------------------------------------------
    def get_webinar_details(
        self, webinar_id: str, account_id: str, client_id: str, client_secret: str
    ) -> pd.DataFrame:
        url = self._url("getwebinardetails", webinar_id=webinar_id)
        token = self._token(account_id, client_id, client_secret)
        return shape_detail(fetch_page(self, url, token))

    def get_meeting_details(
        self, meeting_id: str, account_id: str, client_id: str, client_secret: str
    ) -> pd.DataFrame:
        """Participant count, duration and other statistics for one meeting."""
        url = self._url("getmeetingdetails", meeting_id=meeting_id)
        token = self._token(account_id, client_id, client_secret)
        return label_meeting_types(shape_detail(fetch_page(self, url, token)), "type")

    # -------------------------------------------------
    # Registrants
    # -------------------------------------------------
    def _registrant_pages(
        self, webinar_id: str, account_id: str, client_id: str, client_secret: str, page_size: int
    ) -> List[str]:
        _validate_page_size(page_size)
        url = self._url("getwebinarregistrants", webinar_id=webinar_id)
        token = self._token(account_id, client_id, client_secret)
        return fetch_all(
            self,
            url,
            token,
            page_size=page_size,
            stop_on_empty=True,
            empty_message=NO_REGISTRANTS_MESSAGE,
        )

    def get_webinar_registrants(
        self,
        webinar_id: str,
        account_id: str,
        client_id: str,
        client_secret: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> pd.DataFrame:
        """Registrants of one webinar; empty (with a notice) when there are none yet."""
        pages = self._registrant_pages(webinar_id, account_id, client_id, client_secret, page_size)
        return shape_registrants(normalize(pages, "registrants"))

    def get_registration_questions(
        self,
        webinar_id: str,
        account_id: str,
        client_id: str,
        client_secret: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> pd.DataFrame:
        """Custom registration question responses, one row per registrant and question."""
        pages = self._registrant_pages(webinar_id, account_id, client_id, client_secret, page_size)
        return shape_registration_questions(pages)

    # -------------------------------------------------
    # Participants
    # -------------------------------------------------
    def get_webinar_participants(
        self,
        webinar_id: str,
        account_id: str,
        client_id: str,
        client_secret: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> pd.DataFrame:
        _validate_page_size(page_size)
        url = self._url("getwebinarparticipants", webinar_id=webinar_id)
        token = self._token(account_id, client_id, client_secret)

        pages = fetch_all(self, url, token, page_size=page_size)
        return normalize(pages, "participants")

    def get_meeting_participants(
        self,
        meeting_id: str,
        account_id: str,
        client_id: str,
        client_secret: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        include_all_instances: bool = False,
    ) -> pd.DataFrame:
        """
        Participants of a meeting.

        With ``include_all_instances`` every past instance of a recurring
        meeting is fetched and tagged with ``instance_date`` and
        ``instance_start_time``. When the instance lookup fails, lists no
        instances, or the instances hold no participants, the latest
        instance is returned with those columns empty; the trigger is kept
        in ``records.attrs["fallback_reason"]``.
        """
        _validate_page_size(page_size)
        meeting_id = str(meeting_id)
        # Resolve once up front so a bad id fails before the token exchange.
        self._url("getmeetingparticipants", meeting_id=meeting_id)
        token = self._token(account_id, client_id, client_secret)

        def fetch_participants(identifier: str) -> pd.DataFrame:
            url = self._url("getmeetingparticipants", meeting_id=identifier)
            return normalize(fetch_all(self, url, token, page_size=page_size), "participants")

        if not include_all_instances:
            return fetch_participants(meeting_id)

        def list_occurrences(identifier: str) -> Optional[List[Occurrence]]:
            url = self._url("getmeetinginstances", meeting_id=identifier)
            try:
                body = fetch_page(self, url, token)
                return OccurrenceListing.model_validate_json(body).meetings
            except (UpstreamError, ValidationError) as e:
                logger.info("Instance lookup for meeting %s unavailable: %s", identifier, e)
                return None

        result = RecurringMeetingExpander(list_occurrences, fetch_participants).run(meeting_id)
        return result.records

    # -------------------------------------------------
    # Webinar extras
    # -------------------------------------------------
    def get_panelists(
        self, webinar_id: str, account_id: str, client_id: str, client_secret: str
    ) -> pd.DataFrame:
        url = self._url("getpanelists", webinar_id=webinar_id)
        token = self._token(account_id, client_id, client_secret)
        return normalize([fetch_page(self, url, token)], "panelists")

    def get_webinar_polls(
        self, webinar_id: str, account_id: str, client_id: str, client_secret: str
    ) -> pd.DataFrame:
        """One row per poll answer; empty (with a notice) when the webinar had no polls."""
        url = self._url("getwebinarpolls", webinar_id=webinar_id)
        token = self._token(account_id, client_id, client_secret)
        return shape_question_report(fetch_page(self, url, token), "poll")

    def get_webinar_qanda(
        self, webinar_id: str, account_id: str, client_id: str, client_secret: str
    ) -> pd.DataFrame:
        url = self._url("getwebinarqanda", webinar_id=webinar_id)
        token = self._token(account_id, client_id, client_secret)
        return shape_question_report(fetch_page(self, url, token), "Q&A")

    def get_tracking_sources(
        self, webinar_id: str, account_id: str, client_id: str, client_secret: str
    ) -> pd.DataFrame:
        """Visitor and registration counts per tracking source, keyed by webinar_id."""
        url = self._url("gettrackingsources", webinar_id=webinar_id)
        token = self._token(account_id, client_id, client_secret)
        df = normalize([fetch_page(self, url, token)], "tracking_sources")
        return shape_tracking_sources(df, webinar_id)


# -----------------------------------------------------------------------------
# Function-style entry points: one fresh client per call, closed afterwards
# -----------------------------------------------------------------------------
def _call(operation: str, *args, **kwargs):
    with ZoomReportsClient() as client:
        return getattr(client, operation)(*args, **kwargs)


def list_users(account_id, client_id, client_secret, page_size=DEFAULT_PAGE_SIZE):
    return _call("list_users", account_id, client_id, client_secret, page_size=page_size)


def list_webinars(user_id, account_id, client_id, client_secret, page_size=DEFAULT_PAGE_SIZE):
    return _call("list_webinars", user_id, account_id, client_id, client_secret, page_size=page_size)


def list_meetings(
    user_id, account_id, client_id, client_secret, meeting_type="previous_meetings", page_size=DEFAULT_PAGE_SIZE
):
    return _call(
        "list_meetings",
        user_id,
        account_id,
        client_id,
        client_secret,
        meeting_type=meeting_type,
        page_size=page_size,
    )


def get_webinar_details(webinar_id, account_id, client_id, client_secret):
    return _call("get_webinar_details", webinar_id, account_id, client_id, client_secret)


def get_meeting_details(meeting_id, account_id, client_id, client_secret):
    return _call("get_meeting_details", meeting_id, account_id, client_id, client_secret)


def get_webinar_registrants(webinar_id, account_id, client_id, client_secret, page_size=DEFAULT_PAGE_SIZE):
    return _call(
        "get_webinar_registrants", webinar_id, account_id, client_id, client_secret, page_size=page_size
    )


def get_registration_questions(webinar_id, account_id, client_id, client_secret, page_size=DEFAULT_PAGE_SIZE):
    return _call(
        "get_registration_questions", webinar_id, account_id, client_id, client_secret, page_size=page_size
    )


def get_webinar_participants(webinar_id, account_id, client_id, client_secret, page_size=DEFAULT_PAGE_SIZE):
    return _call(
        "get_webinar_participants", webinar_id, account_id, client_id, client_secret, page_size=page_size
    )


def get_meeting_participants(
    meeting_id,
    account_id,
    client_id,
    client_secret,
    page_size=DEFAULT_PAGE_SIZE,
    include_all_instances=False,
):
    return _call(
        "get_meeting_participants",
        meeting_id,
        account_id,
        client_id,
        client_secret,
        page_size=page_size,
        include_all_instances=include_all_instances,
    )


def get_panelists(webinar_id, account_id, client_id, client_secret):
    return _call("get_panelists", webinar_id, account_id, client_id, client_secret)


def get_webinar_polls(webinar_id, account_id, client_id, client_secret):
    return _call("get_webinar_polls", webinar_id, account_id, client_id, client_secret)


def get_webinar_qanda(webinar_id, account_id, client_id, client_secret):
    return _call("get_webinar_qanda", webinar_id, account_id, client_id, client_secret)


def get_tracking_sources(webinar_id, account_id, client_id, client_secret):
    return _call("get_tracking_sources", webinar_id, account_id, client_id, client_secret)

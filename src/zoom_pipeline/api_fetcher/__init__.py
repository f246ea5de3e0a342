"""
zoom-pipeline - API Fetcher Module

This module turns Zoom's reporting API into tabular datasets (pandas
DataFrames) for analytics: users, webinars, meetings, registrants,
registration questions, participants, panelists, polls, Q&A and tracking
sources.

How a call flows:
-----------------
1. A fresh Server-to-Server OAuth token is acquired (never cached).
2. The operation name resolves to a URL.
3. Pages are fetched by walking Zoom's next_page_token cursor.
4. Pages are flattened, coerced to text, column names canonicalized and
   paging metadata dropped.
5. An endpoint-specific shaper produces the final schema.
6. Recurring meetings can optionally be expanded across past instances.

Usage:
------
    from zoom_pipeline.api_fetcher import ZoomReportsClient

    client = ZoomReportsClient()
    participants = client.get_meeting_participants(
        "81753923023",
        account_id,
        client_id,
        client_secret,
        include_all_instances=True,
    )

    # Or the function style (fresh client per call)
    from zoom_pipeline.api_fetcher import get_webinar_registrants
    registrants = get_webinar_registrants("99911112222", account_id, client_id, client_secret)

Configuration:
--------------
Optional environment overrides (credentials are always passed explicitly):

    ZOOM_API_BASE_URL     - API root (default: https://api.zoom.us/v2)
    ZOOM_OAUTH_TOKEN_URL  - OAuth token endpoint (default: https://zoom.us/oauth/token)
    ZOOM_TIMEOUT_SEC      - Request timeout (default: 15)
    ZOOM_MAX_RETRIES      - Retries for transient server errors (default: 3)
"""

# -----------------------------------------------------------------------------
# Base client
# -----------------------------------------------------------------------------
from .client_base import (
    BaseAPIClient,
    APIClientError,
    APIClientHTTPError,
    APIClientTimeout,
)

# -----------------------------------------------------------------------------
# Errors and notices
# -----------------------------------------------------------------------------
from .errors import (
    ZoomAPIError,
    ConfigurationError,
    AuthError,
    UpstreamError,
    EmptyResultNotice,
)

# -----------------------------------------------------------------------------
# Pipeline stages
# -----------------------------------------------------------------------------
from .auth import acquire_token
from .endpoints import OperationDescriptor, resolve
from .pagination import fetch_all, fetch_page
from .normalizer import normalize
from .expander import ExpansionResult, RecurringMeetingExpander
from .shapers import meeting_type_label

# -----------------------------------------------------------------------------
# Schema
# -----------------------------------------------------------------------------
from .schema import AccessToken, Occurrence, OccurrenceListing, PageEnvelope

# -----------------------------------------------------------------------------
# Zoom reports client and function-style operations
# -----------------------------------------------------------------------------
from .zoom_api import (
    ZoomReportsClient,
    list_users,
    list_webinars,
    list_meetings,
    get_webinar_details,
    get_meeting_details,
    get_webinar_registrants,
    get_registration_questions,
    get_webinar_participants,
    get_meeting_participants,
    get_panelists,
    get_webinar_polls,
    get_webinar_qanda,
    get_tracking_sources,
)


__all__ = [
    # Base client
    "BaseAPIClient",
    "APIClientError",
    "APIClientHTTPError",
    "APIClientTimeout",
    # Errors
    "ZoomAPIError",
    "ConfigurationError",
    "AuthError",
    "UpstreamError",
    "EmptyResultNotice",
    # Pipeline stages
    "acquire_token",
    "OperationDescriptor",
    "resolve",
    "fetch_all",
    "fetch_page",
    "normalize",
    "ExpansionResult",
    "RecurringMeetingExpander",
    "meeting_type_label",
    # Schema
    "AccessToken",
    "Occurrence",
    "OccurrenceListing",
    "PageEnvelope",
    # Client and operations
    "ZoomReportsClient",
    "list_users",
    "list_webinars",
    "list_meetings",
    "get_webinar_details",
    "get_meeting_details",
    "get_webinar_registrants",
    "get_registration_questions",
    "get_webinar_participants",
    "get_meeting_participants",
    "get_panelists",
    "get_webinar_polls",
    "get_webinar_qanda",
    "get_tracking_sources",
]

"""
Endpoint-specific post-processing applied after generic normalization.

Every function here is pure: it takes a normalized Record Set (or a raw
single-object body) and returns a new frame with the operation's stable
output schema.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import pandas as pd

from .errors import notify_empty
from .normalizer import Body, finalize, flatten_page, flatten_pages, unnest


logger = logging.getLogger(__name__)

MEETING_TYPE_LABELS: Dict[int, str] = {
    1: "Instant meeting",
    2: "Scheduled meeting",
    3: "Recurring meeting with no fixed time",
    8: "Recurring meeting with fixed time",
    10: "Screen share only meeting",
}
UNKNOWN_MEETING_TYPE = "Unknown"

REGISTRATION_QUESTION_COLUMNS = ["registrants_id", "registrants_email", "question", "response"]

TRACKING_SOURCE_RENAMES = {
    "tracking_sources_visitor_count": "visitor_count",
    "tracking_sources_registration_count": "registration_count",
    "tracking_sources_source_name": "tracking_source_name",
    "tracking_sources_id": "tracking_source_id",
}


# ---------------------------------------------------------------------------
# Meeting type codes
# ---------------------------------------------------------------------------
def meeting_type_label(code: Any) -> str:
    """Map Zoom's structural meeting type code to a label; unknown codes -> "Unknown"."""
    try:
        return MEETING_TYPE_LABELS.get(int(code), UNKNOWN_MEETING_TYPE)
    except (TypeError, ValueError):
        return UNKNOWN_MEETING_TYPE


def label_meeting_types(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Add ``meeting_type_label`` right after ``column`` (no-op when absent)."""
    if column not in df.columns:
        return df
    out = df.copy()
    position = list(out.columns).index(column) + 1
    out.insert(position, "meeting_type_label", [meeting_type_label(v) for v in out[column]])
    return out


# ---------------------------------------------------------------------------
# Generic helpers
# ---------------------------------------------------------------------------
def inject_identifier(df: pd.DataFrame, name: str, value: Any) -> pd.DataFrame:
    """Put the caller-supplied id in front when the response does not echo it."""
    out = df.copy()
    if name in out.columns:
        out = out.drop(columns=[name])
    out.insert(0, name, [str(value)] * len(out))
    return out


def filter_lookback(
    df: pd.DataFrame,
    column: str,
    days: int,
    now: Optional[datetime] = None,
) -> pd.DataFrame:
    """Keep rows started within the last ``days`` days; rows with no timestamp are kept."""
    if column not in df.columns or df.empty:
        return df

    current = pd.Timestamp(now) if now is not None else pd.Timestamp.now(tz="UTC")
    if current.tzinfo is None:
        current = current.tz_localize("UTC")
    cutoff = current - pd.Timedelta(days=days)

    started = pd.to_datetime(df[column], utc=True, errors="coerce")
    keep = started.isna() | (started >= cutoff)

    dropped = int((~keep).sum())
    if dropped:
        logger.info("Dropped %d row(s) older than %d days", dropped, days)
    return df.loc[keep].reset_index(drop=True)


# ---------------------------------------------------------------------------
# Single-object detail endpoints
# ---------------------------------------------------------------------------
def shape_detail(body: Body) -> pd.DataFrame:
    """
    One-row Record Set from a detail response.

    Nested values (objects, arrays such as tracking_fields) are discarded so
    every cell stays scalar.
    """
    df = flatten_page(body)
    nested = [
        c for c in df.columns
        if "." in c or any(isinstance(v, (list, dict)) for v in df[c].tolist())
    ]
    return finalize(df.drop(columns=nested))


# ---------------------------------------------------------------------------
# Registrants
# ---------------------------------------------------------------------------
def shape_registrants(df: pd.DataFrame) -> pd.DataFrame:
    if "registrants_custom_questions" in df.columns:
        return df.drop(columns=["registrants_custom_questions"])
    return df


def shape_registration_questions(pages: Iterable[Body]) -> pd.DataFrame:
    """
    One row per (registrant, custom question) pair.

    Registrants who answered no custom questions are dropped; a page with no
    answers at all only produces a notice.
    """
    frames = []
    for page in pages:
        answers = unnest(flatten_pages([page], "registrants"), "registrants.custom_questions")
        if "title" not in answers.columns or answers.empty:
            notify_empty(
                "Zoom API did not return any registration question responses for selected Webinar Id"
            )
            continue

        answers = answers.rename(columns={"title": "question", "value": "response"})
        answers = answers.reindex(
            columns=["registrants.id", "registrants.email", "question", "response"]
        )
        frames.append(finalize(answers))

    if not frames:
        return pd.DataFrame(columns=REGISTRATION_QUESTION_COLUMNS, dtype=object)
    return pd.concat(frames, ignore_index=True, sort=False)


# ---------------------------------------------------------------------------
# Polls / Q&A reports
# ---------------------------------------------------------------------------
def shape_question_report(body: Body, label: str = "poll") -> pd.DataFrame:
    """
    Unnest ``questions[].question_details[]`` into one row per answer.

    Used by both the polls and the Q&A report, which share a shape.
    """
    df = flatten_page(body, "questions")
    if df.empty:
        notify_empty(f"Zoom API returned no {label} results for this webinar")
        return pd.DataFrame(dtype=object)

    return finalize(unnest(df, "questions.question_details"))


# ---------------------------------------------------------------------------
# Tracking sources
# ---------------------------------------------------------------------------
def shape_tracking_sources(df: pd.DataFrame, webinar_id: str) -> pd.DataFrame:
    out = df.drop(columns=[c for c in ("tracking_sources_tracking_url",) if c in df.columns])
    out = out.rename(columns=TRACKING_SOURCE_RENAMES)
    return inject_identifier(out, "webinar_id", webinar_id)

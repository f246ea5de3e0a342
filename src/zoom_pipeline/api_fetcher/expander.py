"""
Recurring-meeting participant expansion.

A recurring meeting keeps one meeting id across many past instances, and
the plain participants report only covers the latest one. The expander
lists the instances and fetches participants for each, falling back to the
single-instance report when that is not possible or yields nothing.

The network is injected as two callables so the path selection can be
exercised without HTTP.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import quote

import pandas as pd

from .errors import UpstreamError
from .schema import Occurrence


logger = logging.getLogger(__name__)

EXPAND = "expand"
SINGLE = "single"

FALLBACK_LOOKUP_FAILED = "instances_lookup_failed"
FALLBACK_NO_OCCURRENCES = "no_occurrences"
FALLBACK_NO_PARTICIPANTS = "no_participants"

OCCURRENCE_COLUMNS = ("instance_date", "instance_start_time")


@dataclass
class ExpansionResult:
    records: pd.DataFrame
    path: str
    fallback_reason: Optional[str] = None


def select_path(occurrences: Optional[List[Occurrence]]) -> str:
    """``None`` (lookup failed) or no occurrences -> SINGLE, otherwise EXPAND."""
    if not occurrences:
        return SINGLE
    return EXPAND


def encode_occurrence_id(uuid: str) -> str:
    """Percent-encode an instance UUID, including '/' and '='."""
    return quote(uuid, safe="")


def tag_occurrence(df: pd.DataFrame, occurrence: Occurrence) -> pd.DataFrame:
    out = df.copy()
    out["instance_date"] = occurrence.instance_date
    out["instance_start_time"] = occurrence.start_time
    return out


def stamp_single(df: pd.DataFrame) -> pd.DataFrame:
    """Add the occurrence columns as nulls so both paths share one schema."""
    out = df.copy()
    for col in OCCURRENCE_COLUMNS:
        out[col] = pd.Series([None] * len(out), index=out.index, dtype=object)
    return out


class RecurringMeetingExpander:
    """
    Two-state decision between ``expand`` and ``single``.

    Args:
        list_occurrences: meeting_id -> occurrences, or None when the
            instances lookup failed.
        fetch_participants: meeting id or encoded instance UUID -> normalized
            participants Record Set.
    """

    def __init__(
        self,
        list_occurrences: Callable[[str], Optional[List[Occurrence]]],
        fetch_participants: Callable[[str], pd.DataFrame],
    ) -> None:
        self.list_occurrences = list_occurrences
        self.fetch_participants = fetch_participants

    def run(self, meeting_id: str) -> ExpansionResult:
        occurrences = self.list_occurrences(meeting_id)

        if select_path(occurrences) == SINGLE:
            reason = FALLBACK_LOOKUP_FAILED if occurrences is None else FALLBACK_NO_OCCURRENCES
            return self._single(meeting_id, reason)

        records = self._expand(occurrences)
        if records.empty:
            return self._single(meeting_id, FALLBACK_NO_PARTICIPANTS)

        logger.info(
            "Expanded meeting %s across %d instance(s): %d participant row(s)",
            meeting_id,
            len(occurrences),
            len(records),
        )
        records.attrs["fallback_reason"] = None
        return ExpansionResult(records=records, path=EXPAND)

    def _expand(self, occurrences: List[Occurrence]) -> pd.DataFrame:
        frames = []
        for occurrence in occurrences:
            try:
                df = self.fetch_participants(encode_occurrence_id(occurrence.uuid))
            except UpstreamError as e:
                logger.warning("Skipping meeting instance %s: %s", occurrence.uuid, e)
                continue
            if df.empty:
                continue
            frames.append(tag_occurrence(df, occurrence))

        if not frames:
            return pd.DataFrame()
        combined = pd.concat(frames, ignore_index=True, sort=False).astype(object)
        # Columns seen in only some instances come back as NaN.
        return combined.where(combined.notna(), None)

    def _single(self, meeting_id: str, reason: str) -> ExpansionResult:
        logger.info("Meeting %s: falling back to single instance (%s)", meeting_id, reason)
        records = stamp_single(self.fetch_participants(meeting_id))
        records.attrs["fallback_reason"] = reason
        return ExpansionResult(records=records, path=SINGLE, fallback_reason=reason)

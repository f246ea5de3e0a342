from __future__ import annotations

from typing import List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccessToken(BaseModel):
    """Body of a successful Server-to-Server OAuth exchange."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(..., min_length=1, description="Bearer token")
    token_type: Optional[str] = Field(None, description="Usually 'bearer'")
    expires_in: Optional[int] = Field(None, description="Lifetime in seconds (not tracked)")
    scope: Optional[str] = None


class PageEnvelope(BaseModel):
    """
    Pagination metadata carried by every paged Zoom response.

    Only the fields needed to drive the fetch loop are declared; the records
    themselves and any other fields pass through untouched.
    """

    model_config = ConfigDict(extra="allow")

    next_page_token: str = ""
    total_records: Optional[int] = None
    page_size: Optional[int] = None
    page_count: Optional[int] = None

    @field_validator("next_page_token", mode="before")
    @classmethod
    def validate_next_page_token(cls, v):
        if v is None:
            return ""
        return str(v)

    @property
    def is_last(self) -> bool:
        return self.next_page_token == ""


class Occurrence(BaseModel):
    """One past instance of a recurring meeting."""

    model_config = ConfigDict(extra="allow")

    uuid: str = Field(..., min_length=1, description="Opaque instance UUID")
    start_time: str = Field(..., description="ISO-8601 start timestamp")

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v: str) -> str:
        try:
            parsed = pd.Timestamp(v)
        except (TypeError, ValueError) as e:
            raise ValueError(f"start_time is not a timestamp: {v!r}") from e
        if pd.isna(parsed):
            raise ValueError(f"start_time is not a timestamp: {v!r}")
        return v

    @property
    def instance_date(self) -> str:
        """Calendar date of the start timestamp, truncated to the day."""
        return pd.Timestamp(self.start_time).strftime("%Y-%m-%d")


class OccurrenceListing(BaseModel):
    """Body of ``GET /past_meetings/{meeting_id}/instances``."""

    model_config = ConfigDict(extra="allow")

    meetings: List[Occurrence] = Field(default_factory=list)

    @field_validator("meetings", mode="before")
    @classmethod
    def validate_meetings(cls, v):
        if v is None:
            return []
        if isinstance(v, list):
            return [x for x in v if isinstance(x, dict) and x.get("uuid") and x.get("start_time")]
        return []

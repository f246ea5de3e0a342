from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd


logger = logging.getLogger(__name__)

# Zoom paging metadata; recycled onto every row by flattening, never wanted downstream.
PAGINATION_COLUMNS = ("page_count", "page_size", "next_page_token", "total_records")

Body = Union[str, bytes, Dict[str, Any]]


# ---------------------------------------------------------------------------
# Column names
# ---------------------------------------------------------------------------
def clean_column_name(name: Any) -> str:
    """
    Canonical snake_case column name.

    "participants.user_email" -> "participants_user_email"
    "registrationCount"       -> "registration_count"
    """
    s = str(name)
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", s)
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s)
    s = re.sub(r"[^0-9a-zA-Z]+", "_", s).strip("_").lower()
    return s or "x"


def clean_names(df: pd.DataFrame) -> pd.DataFrame:
    """Rename every column with clean_column_name, suffixing duplicates _2, _3, ..."""
    seen: Dict[str, int] = {}
    names: List[str] = []
    for col in df.columns:
        base = clean_column_name(col)
        seen[base] = seen.get(base, 0) + 1
        names.append(base if seen[base] == 1 else f"{base}_{seen[base]}")

    out = df.copy()
    out.columns = names
    return out


# ---------------------------------------------------------------------------
# Cell coercion
# ---------------------------------------------------------------------------
def to_text(value: Any) -> Optional[str]:
    """
    Coerce one cell to text so sparse pages never disagree on column type.
    Missing values stay None.
    """
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"))
    if value is None or pd.isna(value):
        return None
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return str(value)


def _text_leaves(record: Dict[str, Any], keep_lists: bool = True) -> Dict[str, Any]:
    # Leaves become text while still plain JSON; pandas never sees a raw number.
    out: Dict[str, Any] = {}
    for key, value in record.items():
        if isinstance(value, dict):
            out[key] = _text_leaves(value, keep_lists)
        elif isinstance(value, list):
            if keep_lists:
                out[key] = value
        else:
            out[key] = to_text(value)
    return out


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------
def _load(body: Body) -> Any:
    if isinstance(body, (str, bytes)):
        return json.loads(body)
    return body


def _records_frame(records: List[Dict[str, Any]]) -> pd.DataFrame:
    return pd.json_normalize([_text_leaves(r) for r in records], sep=".")


def flatten_page(body: Body, collection: Optional[str] = None) -> pd.DataFrame:
    """
    Turn one raw Zoom response into rows of text.

    With a ``collection`` the page yields one row per element of that array,
    its fields prefixed ``"<collection>."`` and the page's top-level scalars
    recycled onto every row. An absent, null or empty collection yields zero
    rows. Without a ``collection`` the page itself is a single row.

    List-valued fields inside records are kept as-is for ``unnest``.
    """
    payload = _load(body)
    if not isinstance(payload, dict):
        return pd.DataFrame()

    if collection is None:
        return _records_frame([payload])

    records = payload.get(collection)
    if not isinstance(records, list):
        return pd.DataFrame()
    records = [r for r in records if isinstance(r, dict)]
    if not records:
        return pd.DataFrame()

    record_frame = _records_frame(records).add_prefix(f"{collection}.")

    meta = _text_leaves({k: v for k, v in payload.items() if k != collection}, keep_lists=False)
    meta_row: Dict[str, Any] = {}
    if meta:
        meta_row = pd.json_normalize(meta, sep=".").iloc[0].to_dict()

    # Preserve JSON key order: metadata before/after the collection stays put.
    columns: Dict[str, List[Any]] = {}
    for key in payload:
        if key == collection:
            for col in record_frame.columns:
                columns[col] = record_frame[col].tolist()
            continue
        for name, leaf in meta_row.items():
            if name == key or name.startswith(f"{key}."):
                columns[name] = [leaf] * len(record_frame)

    return pd.DataFrame(columns, dtype=object)


def flatten_pages(pages: Iterable[Body], collection: Optional[str] = None) -> pd.DataFrame:
    """Flatten and concatenate pages in arrival order (never re-sorted)."""
    frames = [flatten_page(p, collection) for p in pages]
    frames = [f for f in frames if len(f.index) > 0]
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True, sort=False)


def finalize(df: pd.DataFrame) -> pd.DataFrame:
    """Coerce every cell to text, canonicalize names, drop paging metadata."""
    out = pd.DataFrame(
        {col: [to_text(v) for v in df[col].tolist()] for col in df.columns},
        columns=list(df.columns),
        dtype=object,
    )
    out = clean_names(out)

    existing = [c for c in PAGINATION_COLUMNS if c in out.columns]
    if existing:
        out = out.drop(columns=existing)

    return out.reset_index(drop=True)


def normalize(pages: Iterable[Body], collection: Optional[str] = None) -> pd.DataFrame:
    """
    Convert raw Zoom pages into one rectangular, all-text Record Set.

    Pure: normalizing the same pages twice gives identical frames.
    """
    pages = list(pages)
    df = finalize(flatten_pages(pages, collection))
    logger.debug("Normalized %d page(s) into %d row(s)", len(pages), len(df))
    return df


def unnest(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """
    One row per element of a list-of-objects column.

    Inner fields take the list column's place, unprefixed. Rows whose list
    is missing or empty are dropped.
    """
    if column not in df.columns:
        return pd.DataFrame(columns=[c for c in df.columns if c != column])

    position = list(df.columns).index(column)
    before = list(df.columns[:position])
    after = list(df.columns[position + 1:])

    parents: List[int] = []
    items: List[Dict[str, Any]] = []
    for row, nested in enumerate(df[column].tolist()):
        if not isinstance(nested, list):
            continue
        for item in nested:
            if isinstance(item, dict):
                parents.append(row)
                items.append(item)

    if not items:
        return pd.DataFrame(columns=before + after)

    inner = _records_frame(items)
    outer = df[before + after].iloc[parents].reset_index(drop=True)
    # Inner fields win on a name clash but keep the outer column's slot.
    for col in inner.columns:
        if col in outer.columns:
            outer[col] = inner[col]
    added = [c for c in inner.columns if c not in outer.columns]

    return pd.concat([outer[before], inner[added], outer[after]], axis=1)

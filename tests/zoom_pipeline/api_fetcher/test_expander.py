import pandas as pd
import pytest
from unittest.mock import MagicMock

from zoom_pipeline.api_fetcher.errors import UpstreamError
from zoom_pipeline.api_fetcher.expander import (
    EXPAND,
    FALLBACK_LOOKUP_FAILED,
    FALLBACK_NO_OCCURRENCES,
    FALLBACK_NO_PARTICIPANTS,
    SINGLE,
    RecurringMeetingExpander,
    encode_occurrence_id,
    select_path,
    stamp_single,
    tag_occurrence,
)
from zoom_pipeline.api_fetcher.schema import Occurrence


def occ(uuid, start_time):
    return Occurrence(uuid=uuid, start_time=start_time)


def participants(*names):
    return pd.DataFrame({"participants_name": list(names)}, dtype=object)


@pytest.mark.unit
def test_select_path():
    assert select_path(None) == SINGLE
    assert select_path([]) == SINGLE
    assert select_path([occ("A", "2024-01-01T10:00:00Z")]) == EXPAND


@pytest.mark.unit
def test_encode_occurrence_id_escapes_reserved_characters():
    assert encode_occurrence_id("/ab+c==") == "%2Fab%2Bc%3D%3D"
    assert encode_occurrence_id("plain") == "plain"


@pytest.mark.unit
def test_occurrence_instance_date_truncates_to_day():
    assert occ("A", "2024-01-05T23:30:00Z").instance_date == "2024-01-05"


@pytest.mark.unit
def test_tag_and_stamp_share_schema():
    tagged = tag_occurrence(participants("Ann"), occ("A", "2024-01-05T15:00:00Z"))
    stamped = stamp_single(participants("Ann"))

    assert list(tagged.columns) == list(stamped.columns)
    assert tagged.loc[0, "instance_date"] == "2024-01-05"
    assert tagged.loc[0, "instance_start_time"] == "2024-01-05T15:00:00Z"
    assert stamped.loc[0, "instance_date"] is None


@pytest.mark.unit
def test_expand_path_tags_and_unions_in_listing_order():
    occurrences = [occ("B/x=", "2024-02-01T10:00:00Z"), occ("A", "2024-01-01T10:00:00Z")]
    fetch = MagicMock(side_effect=[participants("Bo", "Cy"), participants("Ann")])

    result = RecurringMeetingExpander(lambda _: occurrences, fetch).run("123")

    assert result.path == EXPAND
    assert result.fallback_reason is None
    assert result.records["participants_name"].tolist() == ["Bo", "Cy", "Ann"]
    assert result.records["instance_date"].tolist() == ["2024-02-01", "2024-02-01", "2024-01-01"]
    assert [c[0][0] for c in fetch.call_args_list] == ["B%2Fx%3D", "A"]


@pytest.mark.unit
def test_lookup_failure_falls_back_to_single():
    fetch = MagicMock(return_value=participants("Ann"))

    result = RecurringMeetingExpander(lambda _: None, fetch).run("123")

    assert result.path == SINGLE
    assert result.fallback_reason == FALLBACK_LOOKUP_FAILED
    assert result.records.attrs["fallback_reason"] == FALLBACK_LOOKUP_FAILED
    fetch.assert_called_once_with("123")


@pytest.mark.unit
def test_zero_occurrences_matches_single_path_output():
    single = participants("Ann", "Bo")
    fetch = MagicMock(return_value=single)

    result = RecurringMeetingExpander(lambda _: [], fetch).run("123")

    assert result.fallback_reason == FALLBACK_NO_OCCURRENCES
    assert result.records["instance_date"].isna().all()
    pd.testing.assert_frame_equal(
        result.records.drop(columns=["instance_date", "instance_start_time"]), single
    )


@pytest.mark.unit
def test_no_participants_across_occurrences_falls_back():
    occurrences = [occ("A", "2024-01-01T10:00:00Z"), occ("B", "2024-01-08T10:00:00Z")]
    fetch = MagicMock(side_effect=[pd.DataFrame(), pd.DataFrame(), participants("Ann")])

    result = RecurringMeetingExpander(lambda _: occurrences, fetch).run("123")

    assert result.path == SINGLE
    assert result.fallback_reason == FALLBACK_NO_PARTICIPANTS
    assert result.records["participants_name"].tolist() == ["Ann"]
    assert fetch.call_args_list[-1][0][0] == "123"


@pytest.mark.unit
def test_failing_occurrence_is_skipped():
    occurrences = [occ("A", "2024-01-01T10:00:00Z"), occ("B", "2024-01-08T10:00:00Z")]
    fetch = MagicMock(side_effect=[UpstreamError("gone", status_code=404), participants("Bo")])

    result = RecurringMeetingExpander(lambda _: occurrences, fetch).run("123")

    assert result.path == EXPAND
    assert result.records["instance_date"].tolist() == ["2024-01-08"]


@pytest.mark.unit
def test_columns_missing_in_some_occurrences_are_none():
    occurrences = [occ("A", "2024-01-01T10:00:00Z"), occ("B", "2024-01-08T10:00:00Z")]
    first = pd.DataFrame({"participants_name": ["Ann"], "participants_email": ["a@x.com"]}, dtype=object)
    fetch = MagicMock(side_effect=[first, participants("Bo")])

    result = RecurringMeetingExpander(lambda _: occurrences, fetch).run("123")

    assert result.records["participants_email"].tolist() == ["a@x.com", None]

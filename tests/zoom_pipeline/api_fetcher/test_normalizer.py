import json

import pandas as pd
import pytest

from zoom_pipeline.api_fetcher.normalizer import (
    PAGINATION_COLUMNS,
    clean_column_name,
    clean_names,
    flatten_page,
    normalize,
    to_text,
    unnest,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("participants.user_email", "participants_user_email"),
        ("registrationCount", "registration_count"),
        ("Join Time", "join_time"),
        ("__id__", "id"),
        ("HTTPStatus", "http_status"),
        ("...", "x"),
    ],
)
def test_clean_column_name(raw, expected):
    assert clean_column_name(raw) == expected


@pytest.mark.unit
def test_clean_names_suffixes_duplicates():
    df = pd.DataFrame([[1, 2, 3]], columns=["a.b", "a_b", "A B"])
    assert list(clean_names(df).columns) == ["a_b", "a_b_2", "a_b_3"]


@pytest.mark.unit
def test_to_text():
    assert to_text(None) is None
    assert to_text(float("nan")) is None
    assert to_text(True) == "true"
    assert to_text(5) == "5"
    assert to_text(5.0) == "5.0"
    assert to_text(2.5) == "2.5"
    assert to_text("x") == "x"
    assert to_text([{"a": 1}]) == '[{"a":1}]'


@pytest.mark.unit
def test_flatten_page_recycles_scalars_and_prefixes_records(make_page):
    body = make_page("participants", [{"id": "1", "name": "Ann"}, {"id": "2", "name": "Bo"}])
    df = flatten_page(body, "participants")

    assert list(df.columns) == [
        "page_size",
        "next_page_token",
        "total_records",
        "participants.id",
        "participants.name",
    ]
    assert df["participants.name"].tolist() == ["Ann", "Bo"]
    assert df["total_records"].tolist() == ["2", "2"]


@pytest.mark.unit
def test_flatten_page_flattens_nested_objects():
    body = {"participants": [{"id": "1", "device": {"os": "mac", "ver": {"major": 5}}}]}
    df = flatten_page(body, "participants")
    assert "participants.device.os" in df.columns
    assert "participants.device.ver.major" in df.columns


@pytest.mark.unit
@pytest.mark.parametrize("records", [None, [], "nope"])
def test_flatten_page_absent_or_empty_collection_gives_zero_rows(records):
    body = {"page_size": 300, "participants": records}
    assert len(flatten_page(body, "participants")) == 0
    assert len(flatten_page({"page_size": 300}, "participants")) == 0


@pytest.mark.unit
def test_normalize_concatenates_pages_in_arrival_order(make_page):
    pages = [
        make_page("participants", [{"id": "z", "name": "Zed"}], next_page_token="t"),
        make_page("participants", [{"id": "a", "email": "a@x.com"}]),
    ]
    df = normalize(pages, "participants")

    assert df["participants_id"].tolist() == ["z", "a"]
    assert df["participants_name"].tolist() == ["Zed", None]
    assert df["participants_email"].tolist() == [None, "a@x.com"]


@pytest.mark.unit
def test_normalize_drops_pagination_columns(make_page):
    body = json.dumps(
        {
            "page_count": 1,
            "page_size": 300,
            "next_page_token": "",
            "total_records": 1,
            "participants": [{"id": "1"}],
        }
    )
    df = normalize([body], "participants")

    for col in PAGINATION_COLUMNS:
        assert col not in df.columns
    assert list(df.columns) == ["participants_id"]


@pytest.mark.unit
def test_normalize_coerces_everything_to_text(make_page):
    pages = [
        make_page("participants", [{"duration": 60, "attentiveness_score": 1.5, "failover": False}]),
        make_page("participants", [{"duration": "45"}]),
    ]
    df = normalize(pages, "participants")

    assert df["participants_duration"].tolist() == ["60", "45"]
    assert df["participants_attentiveness_score"].tolist() == ["1.5", None]
    assert df["participants_failover"].tolist() == ["false", None]


@pytest.mark.unit
def test_normalize_tolerates_empty_page_between_full_ones(make_page):
    pages = [
        make_page("participants", [{"id": "1"}], next_page_token="t"),
        json.dumps({"next_page_token": "u"}),
        make_page("participants", [{"id": "2"}]),
    ]
    assert normalize(pages, "participants")["participants_id"].tolist() == ["1", "2"]


@pytest.mark.unit
def test_normalize_no_pages_gives_empty_frame():
    df = normalize([], "participants")
    assert df.empty
    assert len(df.columns) == 0


@pytest.mark.unit
def test_normalize_is_idempotent(make_page):
    pages = [
        make_page("users", [{"id": "1", "type": 1}], next_page_token="t"),
        make_page("users", [{"id": "2", "dept": "Ops"}]),
    ]
    first = normalize(pages, "users")
    second = normalize(pages, "users")
    pd.testing.assert_frame_equal(first, second)


@pytest.mark.unit
def test_unnest_expands_list_column_and_drops_empty_rows():
    df = pd.DataFrame(
        {
            "id": ["1", "2", "3"],
            "answers": [[{"q": "a", "v": "x"}, {"q": "b", "v": "y"}], [], None],
            "tail": ["t1", "t2", "t3"],
        }
    )
    out = unnest(df, "answers")

    assert list(out.columns) == ["id", "q", "v", "tail"]
    assert out["id"].tolist() == ["1", "1"]
    assert out["q"].tolist() == ["a", "b"]


@pytest.mark.unit
def test_unnest_missing_column_gives_zero_rows():
    df = pd.DataFrame({"id": ["1"]})
    out = unnest(df, "answers")
    assert out.empty
    assert list(out.columns) == ["id"]


@pytest.mark.unit
def test_flatten_page_builds_frame_with_json_normalize(monkeypatch):
    calls = []
    real = pd.json_normalize

    def spy(*args, **kwargs):
        calls.append(kwargs.get("sep"))
        return real(*args, **kwargs)

    monkeypatch.setattr(pd, "json_normalize", spy)
    df = flatten_page({"page_size": 300, "participants": [{"id": "1", "device": {"os": "mac"}}]}, "participants")

    assert calls and all(sep == "." for sep in calls)
    assert df["participants.device.os"].tolist() == ["mac"]


@pytest.mark.unit
def test_flatten_page_cells_are_text_before_pages_are_joined():
    body = {"page_size": 300, "participants": [{"pmi": 9007199254740993}, {"name": "b"}]}
    df = flatten_page(body, "participants")

    assert df["participants.pmi"].tolist()[0] == "9007199254740993"
    assert df["page_size"].tolist() == ["300", "300"]


@pytest.mark.unit
def test_normalize_keeps_large_integers_exact_across_sparse_pages():
    pages = [
        {"next_page_token": "x", "participants": [{"pmi": 9007199254740993}]},
        {"next_page_token": "", "participants": [{"name": "b"}]},
    ]
    df = normalize(pages, "participants")

    assert df["participants_pmi"].tolist() == ["9007199254740993", None]
    assert df["participants_name"].tolist() == [None, "b"]


@pytest.mark.unit
def test_normalize_keeps_json_float_spelling():
    df = normalize([{"participants": [{"score": 1.0}, {"score": 2}]}], "participants")
    assert df["participants_score"].tolist() == ["1.0", "2"]


@pytest.mark.unit
def test_unnest_flattens_nested_inner_objects_and_keeps_outer_slots():
    df = pd.DataFrame(
        {
            "id": ["1"],
            "answers": [[{"q": "a", "meta": {"rank": 1}}]],
            "tail": ["t1"],
        }
    )
    out = unnest(df, "answers")

    assert list(out.columns) == ["id", "q", "meta.rank", "tail"]
    assert out["meta.rank"].tolist() == ["1"]

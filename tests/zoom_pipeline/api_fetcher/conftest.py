import json

import pytest


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=None, json_raises=False, url="https://example.com"):
        self.status_code = status_code
        self._json_data = json_data
        self._json_raises = json_raises
        self.url = url
        if text is not None:
            self.text = text
        elif json_data is not None:
            self.text = json.dumps(json_data)
        else:
            self.text = ""

    def json(self):
        if self._json_raises:
            raise ValueError("Invalid JSON")
        return self._json_data


def page(collection, records, next_page_token="", total_records=None, page_size=300):
    """Build a Zoom-shaped page body."""
    body = {
        "page_size": page_size,
        "next_page_token": next_page_token,
        "total_records": total_records if total_records is not None else len(records),
        collection: records,
    }
    return json.dumps(body)


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def make_page():
    return page

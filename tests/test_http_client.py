"""Unit tests for repo_mirror.retrieval.http_client covering pagination and parsing.

Execute with coverage to validate networking helpers:
    pytest tests/test_http_client.py --maxfail=1 -v --cov=repo_mirror.retrieval.http_client --cov-report=term-missing
"""

from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest
import requests

from repo_mirror.exceptions import ListingError
from repo_mirror.retrieval import http_client
from repo_mirror.retrieval.http_client import RepositoryRecord

API = "https://api.github.com/user/repos"


def _make_resp(status: int = 200, payload: Any = None, headers: Optional[Dict[str, str]] = None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    if payload is None:
        payload = []
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp


def _repo(name: str) -> Dict[str, str]:
    return {"full_name": name, "ssh_url": f"git@github.com:{name}.git", "clone_url": f"https://github.com/{name}.git"}


def _next(url: str) -> Dict[str, str]:
    return {"Link": f'<{url}>; rel="next", <https://api.github.com/user/repos?page=9>; rel="last"'}


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr(http_client.time, "sleep", lambda value: calls.append(value))
    return calls


def test_build_session_attaches_basic_auth():
    session = http_client.build_session("alice", "t")
    assert session.auth == ("alice", "t")
    assert session.headers["User-Agent"].startswith("repo-mirror")


def test_parse_next_link_variants():
    header = '<https://x/p2>; rel="next", <https://x/p5>; rel="last"'
    assert http_client.parse_next_link(header) == "https://x/p2"
    assert http_client.parse_next_link('<https://x/p1>; rel="prev", <https://x/p3>; rel="next"') == "https://x/p3"
    assert http_client.parse_next_link("<https://x/p3>; rel=next") == "https://x/p3"
    assert http_client.parse_next_link('<https://x/p1>; rel="first", <https://x/p1>; rel="prev"') is None
    assert http_client.parse_next_link("") is None
    assert http_client.parse_next_link(None) is None


def test_with_page_size_keeps_existing_query():
    assert http_client.with_page_size(API, 100) == f"{API}?per_page=100"
    assert http_client.with_page_size(f"{API}?type=owner", 50) == f"{API}?type=owner&per_page=50"
    assert http_client.with_page_size(f"{API}?per_page=5", 50) == f"{API}?per_page=5"
    assert http_client.with_page_size(API, 0) == API


def test_record_from_api_uses_requested_field():
    record = RepositoryRecord.from_api(_repo("o/r"))
    assert record == RepositoryRecord("o/r", "git@github.com:o/r.git")
    https = RepositoryRecord.from_api(_repo("o/r"), clone_field="clone_url")
    assert https.clone_url == "https://github.com/o/r.git"


@pytest.mark.parametrize("name", ["../etc", "o/..", "/o/r", "o", "o/r/x", "o//r", "./r"])
def test_record_from_api_rejects_escaping_names(name):
    with pytest.raises(ListingError):
        RepositoryRecord.from_api({"full_name": name, "ssh_url": "git@x"})


def test_record_from_api_requires_fields():
    with pytest.raises(ListingError):
        RepositoryRecord.from_api({"ssh_url": "git@x"})
    with pytest.raises(ListingError):
        RepositoryRecord.from_api({"full_name": "o/r"})
    with pytest.raises(ListingError):
        RepositoryRecord.from_api("o/r")


def test_fetch_walks_pages_in_order(sleeps):
    session = MagicMock()
    session.get.side_effect = [
        _make_resp(200, [_repo("a/1"), _repo("a/2")], headers=_next("https://api.github.com/p2")),
        _make_resp(200, [_repo("a/3")], headers=_next("https://api.github.com/p3")),
        _make_resp(200, [_repo("a/4"), _repo("a/5"), _repo("a/6")]),
    ]
    records = http_client.fetch_repositories(session, API, page_delay=2)
    assert [r.full_name for r in records] == ["a/1", "a/2", "a/3", "a/4", "a/5", "a/6"]
    called = [call.args[0] for call in session.get.call_args_list]
    assert called == [f"{API}?per_page=100", "https://api.github.com/p2", "https://api.github.com/p3"]
    assert sleeps == [2, 2]


def test_fetch_single_page_without_next_makes_one_request(sleeps):
    session = MagicMock()
    session.get.return_value = _make_resp(200, [_repo("a/1")], headers={"Link": '<https://x/p1>; rel="first"'})
    records = http_client.fetch_repositories(session, API)
    assert len(records) == 1
    assert session.get.call_count == 1
    assert sleeps == []


def test_fetch_empty_first_page(sleeps):
    session = MagicMock()
    session.get.return_value = _make_resp(200, [])
    assert http_client.fetch_repositories(session, API) == []
    assert session.get.call_count == 1


def test_fetch_passes_timeout():
    session = MagicMock()
    session.get.return_value = _make_resp(200, [])
    http_client.fetch_repositories(session, API, timeout=7, per_page=0)
    session.get.assert_called_once_with(API, timeout=7)


def test_fetch_non_2xx_on_later_page_aborts(sleeps):
    session = MagicMock()
    session.get.side_effect = [
        _make_resp(200, [_repo("a/1")], headers=_next("https://api.github.com/p2")),
        _make_resp(502, {"message": "Bad gateway"}),
    ]
    with pytest.raises(ListingError) as excinfo:
        http_client.fetch_repositories(session, API)
    assert excinfo.value.details["status"] == 502
    assert "Bad gateway" in str(excinfo.value)


def test_fetch_unauthorized_is_fatal():
    session = MagicMock()
    session.get.return_value = _make_resp(401, {"message": "Bad credentials"})
    with pytest.raises(ListingError):
        http_client.fetch_repositories(session, API)


def test_fetch_transport_error_is_fatal():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("down")
    with pytest.raises(ListingError) as excinfo:
        http_client.fetch_repositories(session, API)
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


def test_fetch_malformed_body_is_fatal():
    session = MagicMock()
    resp = _make_resp(200)
    resp.json.side_effect = ValueError("no json")
    session.get.return_value = resp
    with pytest.raises(ListingError):
        http_client.fetch_repositories(session, API)

    session.get.return_value = _make_resp(200, {"message": "not a list"})
    with pytest.raises(ListingError):
        http_client.fetch_repositories(session, API)


def test_log_http_error_handles_json_and_text(caplog):
    resp = _make_resp(403, {"message": "bad"})
    assert http_client.log_http_error(resp, "url") == "bad"
    assert "bad" in caplog.text

    resp = _make_resp(500)
    resp.json.side_effect = ValueError()
    resp.text = "plain"
    assert http_client.log_http_error(resp, "url") == "plain"


def test_dedupe_records_keeps_first_occurrence():
    records = [
        RepositoryRecord("a/1", "x"),
        RepositoryRecord("a/2", "y"),
        RepositoryRecord("a/1", "z"),
    ]
    unique = http_client.dedupe_records(records)
    assert unique == [RepositoryRecord("a/1", "x"), RepositoryRecord("a/2", "y")]

import datetime
import io
import json
import socket
import urllib.error

import pytest

import notion_api
from models import HEADING2, PARAGRAPH, TOGGLE, TableBlock
from notion_api import (
    NotionRequestError,
    build_block_tree,
    extract_date,
    fetch_page_metadata,
    rich_text_to_runs,
    to_block,
)


def rich(text, url=None):
    return {"plain_text": text, "href": url, "text": {"content": text}}


def raw_block(block_id, block_type, text="", has_children=False):
    return {
        "id": block_id,
        "type": block_type,
        "has_children": has_children,
        block_type: {"rich_text": [rich(text)] if text else []},
    }


def test_rich_text_keeps_links():
    runs = rich_text_to_runs(
        [rich("최저가 ", None), {"text": {"content": "보러가기", "link": {"url": "https://coupa.ng/x"}}}]
    )

    assert runs == [("최저가 ", None), ("보러가기", "https://coupa.ng/x")]


def test_heading1_maps_to_heading2_and_unknown_types_drop():
    block = to_block(raw_block("h", "heading_1", "제목"))

    assert block.type == HEADING2
    assert block.text == "제목"
    assert to_block(raw_block("d", "divider")) is None


def test_block_tree_fetches_children_and_table_rows(monkeypatch):
    children = {
        "toggle-1": [raw_block("p-2", "paragraph", "답변")],
        "table-1": [
            {"type": "table_row", "table_row": {"cells": [[rich("제품명")], [rich("핵심")]]}},
            {"type": "table_row", "table_row": {"cells": [[rich("A")], [rich("가벼움")]]}},
        ],
    }
    monkeypatch.setattr(notion_api, "list_block_children", lambda token, block_id: children[block_id])
    raw = [
        raw_block("toggle-1", "toggle", "질문?", has_children=True),
        {"id": "table-1", "type": "table", "has_children": True, "table": {}},
        raw_block("d", "divider"),
    ]

    blocks = build_block_tree("token", raw)

    assert len(blocks) == 2
    toggle, table = blocks
    assert toggle.type == TOGGLE
    assert toggle.children[0].type == PARAGRAPH
    assert toggle.children[0].text == "답변"
    assert isinstance(table, TableBlock)
    assert table.rows == [["제품명", "핵심"], ["A", "가벼움"]]


def test_child_fetch_failure_leaves_block_empty(monkeypatch, caplog):
    def fail(token, block_id):
        raise NotionRequestError("Notion API error: HTTP 404", status_code=404)

    monkeypatch.setattr(notion_api, "list_block_children", fail)

    with caplog.at_level("WARNING", logger="rich-page-generator"):
        blocks = build_block_tree("token", [raw_block("t", "toggle", "질문?", has_children=True)])

    assert blocks[0].children == []
    assert "하위 블록 조회 실패" in caplog.text


def test_children_below_max_depth_are_not_fetched(monkeypatch):
    calls = []

    def fake(token, block_id):
        calls.append(block_id)
        return [raw_block(f"{block_id}-c", "bulleted_list_item", "x", has_children=True)]

    monkeypatch.setattr(notion_api, "list_block_children", fake)

    build_block_tree("token", [raw_block("root", "bulleted_list_item", "x", has_children=True)])

    assert calls == ["root", "root-c"]


def test_page_metadata_reads_properties(monkeypatch):
    page = {
        "id": "page-1",
        "properties": {
            "제목": {"type": "title", "title": [rich("노트북 TOP5")]},
            "날짜": {"type": "date", "date": {"start": "2024-05-01T09:00:00.000+09:00"}},
            "요약": {"type": "rich_text", "rich_text": [rich("요약문")]},
        },
    }
    monkeypatch.setattr(notion_api, "retrieve_page", lambda token, page_id: page)

    assert fetch_page_metadata("token", "page-1") == {
        "page_id": "page-1",
        "title": "노트북 TOP5",
        "date": "2024-05-01",
        "excerpt": "요약문",
    }


def test_missing_date_defaults_to_today():
    assert extract_date({}) == datetime.date.today().isoformat()


def test_list_block_children_follows_cursor(monkeypatch):
    pages = [
        {"results": [{"id": "a"}, {"id": "b"}], "has_more": True, "next_cursor": "cur-2"},
        {"results": [{"id": "c"}], "has_more": False, "next_cursor": None},
    ]
    urls = []

    def fake_request(method, url, token, payload=None):
        urls.append(url)
        return pages[len(urls) - 1]

    monkeypatch.setattr(notion_api, "notion_request", fake_request)

    results = notion_api.list_block_children("token", "block-1")

    assert [item["id"] for item in results] == ["a", "b", "c"]
    assert len(urls) == 2
    assert "start_cursor" not in urls[0]
    assert "start_cursor=cur-2" in urls[1]
    assert all("/blocks/block-1/children?" in url for url in urls)


def http_error(code, body=b"error", headers=None):
    return urllib.error.HTTPError(
        "https://api.notion.com/v1/pages/x", code, "error", headers or {}, io.BytesIO(body)
    )


def fake_urlopen(outcomes):
    calls = []

    def urlopen(req, timeout=None):
        calls.append(req)
        outcome = outcomes[len(calls) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return io.BytesIO(json.dumps(outcome).encode("utf-8"))

    return urlopen, calls


def test_request_retries_rate_limit_with_retry_after(monkeypatch):
    urlopen, calls = fake_urlopen([http_error(429, headers={"Retry-After": "3"}), {"ok": True}])
    sleeps = []
    monkeypatch.setattr(notion_api.urllib.request, "urlopen", urlopen)
    monkeypatch.setattr(notion_api.time, "sleep", sleeps.append)

    assert notion_api.notion_request("GET", "https://api.notion.com/v1/pages/x", "token") == {"ok": True}
    assert sleeps == [3.0]
    assert calls[0].get_header("Authorization") == "Bearer token"
    assert calls[0].get_header("Notion-version") == notion_api.get_notion_api_version()


def test_request_does_not_retry_client_errors(monkeypatch):
    urlopen, calls = fake_urlopen([http_error(404, body=b'{"code":"object_not_found"}')])
    sleeps = []
    monkeypatch.setattr(notion_api.urllib.request, "urlopen", urlopen)
    monkeypatch.setattr(notion_api.time, "sleep", sleeps.append)

    with pytest.raises(NotionRequestError) as excinfo:
        notion_api.notion_request("GET", "https://api.notion.com/v1/pages/x", "token")

    assert excinfo.value.status_code == 404
    assert "object_not_found" in excinfo.value.reason
    assert len(calls) == 1
    assert sleeps == []


def test_request_gives_up_after_repeated_timeouts(monkeypatch):
    urlopen, calls = fake_urlopen([socket.timeout()] * 4)
    sleeps = []
    monkeypatch.setattr(notion_api.urllib.request, "urlopen", urlopen)
    monkeypatch.setattr(notion_api.time, "sleep", sleeps.append)

    with pytest.raises(NotionRequestError) as excinfo:
        notion_api.notion_request("GET", "https://api.notion.com/v1/pages/x", "token")

    assert excinfo.value.reason == "timeout"
    assert len(calls) == 4
    assert sleeps == [1.0, 2.0, 4.0]


def test_request_retries_server_errors_then_raises(monkeypatch):
    urlopen, calls = fake_urlopen([http_error(503)] * 4)
    sleeps = []
    monkeypatch.setattr(notion_api.urllib.request, "urlopen", urlopen)
    monkeypatch.setattr(notion_api.time, "sleep", sleeps.append)

    with pytest.raises(NotionRequestError) as excinfo:
        notion_api.notion_request("GET", "https://api.notion.com/v1/pages/x", "token")

    assert excinfo.value.status_code == 503
    assert sleeps == [1.0, 2.0, 4.0]

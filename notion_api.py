import json
import socket
import time
import urllib.error
import urllib.request
from datetime import date
from typing import Optional
from urllib.parse import urlencode

from log import LOGGER
from models import (
    BULLETED_ITEM,
    CALLOUT,
    HEADING2,
    HEADING3,
    NUMBERED_ITEM,
    PARAGRAPH,
    QUOTE,
    TOGGLE,
    Block,
    TableBlock,
    TextBlock,
    TextRun,
)
from settings import (
    DATE_PROPERTIES,
    EXCERPT_PROPERTIES,
    MAX_BLOCK_DEPTH,
    NOTION_API_BASE,
    TITLE_PROPERTIES,
    get_notion_api_version,
)

BLOCK_TYPE_MAP = {
    "heading_1": HEADING2,
    "heading_2": HEADING2,
    "heading_3": HEADING3,
    "paragraph": PARAGRAPH,
    "quote": QUOTE,
    "callout": CALLOUT,
    "bulleted_list_item": BULLETED_ITEM,
    "numbered_list_item": NUMBERED_ITEM,
    "toggle": TOGGLE,
}


class NotionRequestError(RuntimeError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


def notion_request(
    method: str,
    url: str,
    token: str,
    payload: Optional[dict] = None,
) -> dict:
    data = None
    if payload is not None:
        data = json.dumps(payload).encode("utf-8")
    max_retries = 3
    backoff = 1.0

    for attempt in range(max_retries + 1):
        req = urllib.request.Request(url, data=data, method=method)
        req.add_header("Authorization", f"Bearer {token}")
        req.add_header("Notion-Version", get_notion_api_version())
        req.add_header("Content-Type", "application/json")

        try:
            with urllib.request.urlopen(req, timeout=30) as resp:
                return json.load(resp)
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            retryable = exc.code in {429, 500, 502, 503, 504}
            if retryable and attempt < max_retries:
                retry_after = exc.headers.get("Retry-After")
                if retry_after and retry_after.isdigit():
                    sleep_s = float(retry_after)
                else:
                    sleep_s = backoff
                LOGGER.info(
                    "Notion API 재시도(%s/%s): HTTP %s",
                    attempt + 1,
                    max_retries,
                    exc.code,
                )
                time.sleep(sleep_s)
                backoff = min(backoff * 2, 8.0)
                continue
            raise NotionRequestError(
                f"Notion API error: HTTP {exc.code}: {body}",
                status_code=exc.code,
                reason=body,
            ) from exc
        except (socket.timeout, TimeoutError) as exc:
            if attempt < max_retries:
                LOGGER.info(
                    "Notion API 재시도(%s/%s): timeout",
                    attempt + 1,
                    max_retries,
                )
                time.sleep(backoff)
                backoff = min(backoff * 2, 8.0)
                continue
            raise NotionRequestError(
                "Notion API error: timeout",
                reason="timeout",
            ) from exc
        except urllib.error.URLError as exc:
            is_timeout = isinstance(exc.reason, socket.timeout)
            if attempt < max_retries:
                LOGGER.info(
                    "Notion API 재시도(%s/%s): %s",
                    attempt + 1,
                    max_retries,
                    "timeout" if is_timeout else exc.reason,
                )
                time.sleep(backoff)
                backoff = min(backoff * 2, 8.0)
                continue
            if is_timeout:
                raise NotionRequestError(
                    "Notion API error: timeout",
                    reason="timeout",
                ) from exc
            raise NotionRequestError(
                f"Notion API error: {exc.reason}",
                reason=str(exc.reason),
            ) from exc


def retrieve_page(token: str, page_id: str) -> dict:
    return notion_request("GET", f"{NOTION_API_BASE}/pages/{page_id}", token)


def list_block_children(token: str, block_id: str) -> list[dict]:
    base_url = f"{NOTION_API_BASE}/blocks/{block_id}/children"
    results: list[dict] = []
    cursor: Optional[str] = None
    while True:
        params = {"page_size": 100}
        if cursor:
            params["start_cursor"] = cursor
        url = f"{base_url}?{urlencode(params)}"
        data = notion_request("GET", url, token)
        results.extend(data.get("results", []))
        if not data.get("has_more"):
            break
        cursor = data.get("next_cursor")
    return results


def rich_text_to_runs(rich_text: Optional[list[dict]]) -> list[TextRun]:
    runs: list[TextRun] = []
    for item in rich_text or []:
        text = item.get("plain_text")
        if text is None:
            text = item.get("text", {}).get("content", "")
        href = item.get("href") or (item.get("text", {}).get("link") or {}).get("url")
        runs.append((text, href or None))
    return runs


def rich_text_plain_text(rich_text: Optional[list[dict]]) -> str:
    return "".join(text for text, _ in rich_text_to_runs(rich_text))


def extract_title(properties: dict) -> str:
    for name in TITLE_PROPERTIES:
        prop = properties.get(name) or {}
        if prop.get("type") == "title" or "title" in prop:
            text = rich_text_plain_text(prop.get("title")).strip()
            if text:
                return text
    return ""


def extract_date(properties: dict) -> str:
    for name in DATE_PROPERTIES:
        date_data = (properties.get(name) or {}).get("date") or {}
        start = date_data.get("start")
        if start:
            return start[:10]
    return date.today().isoformat()


def extract_excerpt(properties: dict) -> str:
    for name in EXCERPT_PROPERTIES:
        prop = properties.get(name) or {}
        text = rich_text_plain_text(prop.get("rich_text")).strip()
        if text:
            return text
    return ""


def fetch_page_metadata(token: str, page_id: str) -> dict:
    page = retrieve_page(token, page_id)
    properties = page.get("properties", {})
    return {
        "page_id": page.get("id") or page_id,
        "title": extract_title(properties),
        "date": extract_date(properties),
        "excerpt": extract_excerpt(properties),
    }


def to_block(raw: dict) -> Optional[Block]:
    raw_type = raw.get("type")
    if raw_type == "table":
        return TableBlock(id=raw.get("id") or "")
    block_type = BLOCK_TYPE_MAP.get(raw_type or "")
    if not block_type:
        return None
    payload = raw.get(raw_type, {})
    return TextBlock(
        type=block_type,
        runs=rich_text_to_runs(payload.get("rich_text")),
        id=raw.get("id") or "",
    )


def table_rows_from_children(children: list[dict]) -> list[list[str]]:
    rows: list[list[str]] = []
    for row in children:
        if row.get("type") != "table_row":
            continue
        cells = row.get("table_row", {}).get("cells", [])
        rows.append([rich_text_plain_text(cell) for cell in cells])
    return rows


def fetch_children_safe(token: str, block_id: str) -> list[dict]:
    try:
        return list_block_children(token, block_id)
    except NotionRequestError as exc:
        LOGGER.warning("하위 블록 조회 실패(빈 내용으로 처리): %s (%s)", block_id, exc)
        return []


def build_block_tree(
    token: str, raw_blocks: list[dict], depth: int = 0
) -> list[Block]:
    blocks: list[Block] = []
    for raw in raw_blocks:
        block = to_block(raw)
        if block is None:
            LOGGER.debug("블록 타입 제외: %s", raw.get("type"))
            continue
        block_id = raw.get("id")
        if isinstance(block, TableBlock):
            if block_id:
                block.rows = table_rows_from_children(fetch_children_safe(token, block_id))
        elif raw.get("has_children") and block_id and depth < MAX_BLOCK_DEPTH:
            children = fetch_children_safe(token, block_id)
            block.children = build_block_tree(token, children, depth + 1)
        blocks.append(block)
    return blocks


def fetch_block_tree(token: str, page_id: str) -> list[Block]:
    return build_block_tree(token, list_block_children(token, page_id))

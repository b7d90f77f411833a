import os
import sys
from pathlib import Path
from typing import Optional

DEFAULT_NOTION_API_VERSION = "2022-06-28"
NOTION_API_BASE = "https://api.notion.com/v1"
DEFAULT_PAGES_DIR = "src/pages"
DEFAULT_REGISTRY_PATH = "generated-pages.json"
PAGE_FILE_SUFFIX = ".astro"
TITLE_PROPERTIES = ("Title", "제목", "Name")
DATE_PROPERTIES = ("날짜", "Date")
EXCERPT_PROPERTIES = ("요약", "Excerpt")
# Block tree depth below the page: toggle answers and nested bullets.
MAX_BLOCK_DEPTH = 2
SHORT_LABEL_MAX_CHARS = 10
SPEC_COLON_MAX_INDEX = 15
MIN_TOKEN_LENGTH = 2
TABLE_MATCH_MIN_SCORE = 2
HEADING_REFINE_RATIO = 0.6
COMPARISON_NAME_MAX_CHARS = 15


def load_dotenv(path: str = ".env") -> None:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()
                if not key:
                    continue
                if len(value) >= 2 and value[0] == value[-1] and value[0] in {"\"", "'"}:
                    value = value[1:-1]
                os.environ.setdefault(key, value)
    except FileNotFoundError:
        return


def get_notion_api_version() -> str:
    return os.environ.get("NOTION_API_VERSION", DEFAULT_NOTION_API_VERSION)


# Notion credentials:
# - NOTION_TOKEN: integration token (NOTION_API_KEY is accepted as an alias)
def get_notion_token() -> Optional[str]:
    for key in ("NOTION_TOKEN", "NOTION_API_KEY"):
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return None


# Output policy:
# - PAGES_DIR: directory receiving generated pages (default: src/pages)
# - PAGE_REGISTRY_PATH: JSON index of generated pages (default: generated-pages.json)
def get_pages_dir() -> Path:
    raw = os.environ.get("PAGES_DIR", "").strip()
    return Path(raw or DEFAULT_PAGES_DIR)


def get_registry_path() -> Path:
    raw = os.environ.get("PAGE_REGISTRY_PATH", "").strip()
    return Path(raw or DEFAULT_REGISTRY_PATH)


def get_lexicon_path() -> Optional[Path]:
    raw = os.environ.get("REVIEW_LEXICON_PATH", "").strip()
    if not raw:
        return None
    return Path(raw)


def resolve_page_id() -> Optional[str]:
    if len(sys.argv) > 1 and sys.argv[1].strip():
        return sys.argv[1].strip()
    env_id = os.environ.get("SYNC_PAGE_ID", "").strip()
    if env_id:
        return env_id
    return None

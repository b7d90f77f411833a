import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from log import LOGGER
from settings import PAGE_FILE_SUFFIX


def load_registry(path: Path) -> dict[str, dict]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"페이지 레지스트리 JSON 오류: {path} ({exc})") from exc
    if not isinstance(raw, dict):
        raise RuntimeError(f"페이지 레지스트리 형식 오류: {path} (object 아님)")
    return raw


def save_registry(path: Path, registry: dict[str, dict]) -> None:
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(registry, ensure_ascii=False, indent=2, sort_keys=True)
    path.write_text(payload + "\n", encoding="utf-8")


def build_entry(slug: str, title: str, date: str, file_path: Path) -> dict:
    return {
        "slug": slug,
        "title": title,
        "date": date,
        "file": file_path.as_posix(),
        "updatedAt": datetime.now(timezone.utc).isoformat(timespec="seconds"),
    }


def update_registry(registry: dict[str, dict], page_id: str, entry: dict) -> Optional[str]:
    """Upsert ``entry`` under ``page_id``; return the previous slug if it changed."""
    previous = registry.get(page_id) or {}
    previous_slug = previous.get("slug")
    registry[page_id] = entry
    if previous_slug and previous_slug != entry.get("slug"):
        LOGGER.info("슬러그 변경: %s -> %s", previous_slug, entry.get("slug"))
        return previous_slug
    return None


def remove_stale_page(pages_dir: Path, old_slug: str, current_slug: str) -> bool:
    if not old_slug or old_slug == current_slug:
        return False
    stale = pages_dir / f"{old_slug}{PAGE_FILE_SUFFIX}"
    if not stale.exists():
        return False
    stale.unlink()
    LOGGER.info("이전 페이지 삭제: %s", stale)
    return True

from typing import Optional

from lexicon import load_lexicon
from log import LOGGER, log_environment_info, setup_logging
from notion_api import fetch_block_tree, fetch_page_metadata
from page_writer import generate_slug, write_page
from registry import (
    build_entry,
    load_registry,
    remove_stale_page,
    save_registry,
    update_registry,
)
from review_parser import parse_review
from settings import (
    get_lexicon_path,
    get_notion_token,
    get_pages_dir,
    get_registry_path,
    load_dotenv,
    resolve_page_id,
)


def generate_rich_page(token: str, page_id: str) -> Optional[str]:
    LOGGER.info("노션 페이지 파싱: %s", page_id)
    metadata = fetch_page_metadata(token, page_id)
    title = metadata["title"]
    if not title:
        LOGGER.warning("제목 없음, 건너뜀: %s", page_id)
        return None

    slug = generate_slug(title)
    if not slug:
        LOGGER.warning("슬러그 생성 실패, 건너뜀: %s (%s)", page_id, title)
        return None
    LOGGER.info("제목: %s", title)
    LOGGER.info("슬러그: %s", slug)

    blocks = fetch_block_tree(token, page_id)
    lexicon = load_lexicon(get_lexicon_path())
    result = parse_review(
        blocks,
        title=title,
        date=metadata["date"],
        excerpt=metadata["excerpt"],
        lexicon=lexicon,
    )
    LOGGER.info("제품 수: %s", len(result.products))
    LOGGER.info("FAQ 수: %s", len(result.faqs))
    if not result.summary_table:
        LOGGER.info("요약 표 없음: 제품 본문만 사용")
    if not result.comparison_table:
        LOGGER.info("비교표 없음: 제품 스펙으로 대체")

    pages_dir = get_pages_dir()
    file_path = write_page(result, pages_dir, slug)

    registry_path = get_registry_path()
    registry = load_registry(registry_path)
    entry = build_entry(slug, title, result.date, file_path)
    previous_slug = update_registry(registry, metadata["page_id"], entry)
    if previous_slug:
        remove_stale_page(pages_dir, previous_slug, slug)
    save_registry(registry_path, registry)
    LOGGER.info("생성 완료: %s", file_path)
    return slug


def main() -> None:
    setup_logging()
    load_dotenv()
    log_environment_info()

    notion_token = get_notion_token()
    if not notion_token:
        raise RuntimeError("NOTION_TOKEN must be set (env or .env)")
    page_id = resolve_page_id()
    if not page_id:
        raise RuntimeError("page id must be given as argument or SYNC_PAGE_ID")

    generate_rich_page(notion_token, page_id)


if __name__ == "__main__":
    main()

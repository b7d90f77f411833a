import logging
import sys

from settings import (
    get_lexicon_path,
    get_notion_api_version,
    get_notion_token,
    get_pages_dir,
    get_registry_path,
)

LOGGER = logging.getLogger("rich-page-generator")
def setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

def log_environment_info() -> None:
    python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    lexicon_path = get_lexicon_path()
    LOGGER.info(
        "환경: Python=%s, NOTION_TOKEN=%s",
        python_version,
        "설정됨" if get_notion_token() else "미설정",
    )
    LOGGER.info(
        "환경: PAGES_DIR=%s, PAGE_REGISTRY_PATH=%s",
        get_pages_dir(),
        get_registry_path(),
    )
    LOGGER.info(
        "환경: NOTION_VERSION=%s, REVIEW_LEXICON_PATH=%s",
        get_notion_api_version(),
        lexicon_path if lexicon_path else "기본값",
    )

import re
from typing import Iterable, Optional
from urllib.parse import urlparse

from settings import MIN_TOKEN_LENGTH

URL_TEXT_PATTERN = re.compile(
    r"(https?://[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+|"
    r"www\.[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+)"
)
TRAILING_URL_PUNCTUATION = ").,;]"
LEADING_MARKER_PATTERN = re.compile(r"^[\s•·\-*▶▷►✔✅❌👍👎👉📌#]+")
INLINE_MARKUP_PATTERN = re.compile(r"(\*\*|__|`|~~)")
TRAILING_COLON_PATTERN = re.compile(r"\s*[:：]\s*$")


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").replace("\u00a0", " ")).strip()


def normalize_name_key(name: str) -> str:
    return normalize_whitespace(name).lower()


def find_url_in_text(text: str) -> Optional[str]:
    if not text:
        return None
    match = URL_TEXT_PATTERN.search(text)
    if not match:
        return None
    url = match.group(0).rstrip(TRAILING_URL_PUNCTUATION)
    if url.lower().startswith("www."):
        url = "https://" + url
    return url


def extract_url(runs: Iterable[tuple[str, Optional[str]]]) -> Optional[str]:
    for text, href in runs:
        if href:
            return href
        if text and "http" in text:
            url = find_url_in_text(text)
            if url:
                return url
    return None


def is_host_in(url: str, domains: Iterable[str]) -> bool:
    if not url:
        return False
    host = (urlparse(url).netloc or "").lower().split(":", 1)[0]
    if not host:
        return False
    for domain in domains:
        if host == domain or host.endswith(f".{domain}"):
            return True
    return False


def strip_markup(text: str) -> str:
    cleaned = INLINE_MARKUP_PATTERN.sub("", text or "")
    cleaned = LEADING_MARKER_PATTERN.sub("", cleaned)
    cleaned = TRAILING_COLON_PATTERN.sub("", cleaned)
    return normalize_whitespace(cleaned)


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = (text or "").lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def has_digit(text: str) -> bool:
    return any(ch.isdigit() for ch in text or "")


def join_text(existing: str, text: str, separator: str = "\n") -> str:
    if not existing:
        return text
    return f"{existing}{separator}{text}"


def name_tokens(name: str, min_length: int = MIN_TOKEN_LENGTH) -> list[str]:
    return [word for word in normalize_name_key(name).split(" ") if len(word) >= min_length]


def token_overlap(left: str, right: str, min_length: int = MIN_TOKEN_LENGTH) -> int:
    """Count word pairs where one word contains the other (case-insensitive)."""
    score = 0
    right_tokens = name_tokens(right, min_length)
    for left_word in name_tokens(left, min_length):
        for right_word in right_tokens:
            if left_word in right_word or right_word in left_word:
                score += 1
    return score


def split_key_value(text: str) -> Optional[tuple[str, str]]:
    idx = text.find(":")
    if idx <= 0:
        return None
    label = text[:idx].strip()
    value = text[idx + 1 :].strip()
    if not label or not value:
        return None
    return label, value

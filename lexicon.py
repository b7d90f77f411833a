"""Keyword tables driving the review classifier.

Every heuristic decision in the parser is a substring test against one of
these tables. They live apart from the parsing code so a different template
family (or a test) can swap them via ``load_lexicon``.
"""

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

from log import LOGGER

SECTION_INTRO = "intro"
SECTION_TOPIC = "topic"
SECTION_SUMMARY = "summary"
SECTION_PRODUCTS = "products"
SECTION_GUIDE = "guide"
SECTION_COMPARISON = "comparison"
SECTION_CLOSING = "closing"
SECTION_FAQ = "faq"
SECTIONS = (
    SECTION_INTRO,
    SECTION_TOPIC,
    SECTION_SUMMARY,
    SECTION_PRODUCTS,
    SECTION_GUIDE,
    SECTION_COMPARISON,
    SECTION_CLOSING,
    SECTION_FAQ,
)

SUB_SPECS = "specs"
SUB_PROS = "pros"
SUB_CONS = "cons"
SUB_RECOMMEND = "recommend"
SUB_SECTIONS = (SUB_SPECS, SUB_PROS, SUB_CONS, SUB_RECOMMEND)


@dataclass(frozen=True)
class Lexicon:
    # (substring, section); first match wins, so order is significant.
    section_patterns: tuple[tuple[str, str], ...]
    subsection_keywords: tuple[tuple[str, tuple[str, ...]], ...]
    spec_keywords: tuple[str, ...]
    positive_keywords: tuple[str, ...]
    negative_keywords: tuple[str, ...]
    boilerplate_phrases: tuple[str, ...]
    purchase_phrases: tuple[str, ...]
    marketplace_hosts: tuple[str, ...]
    table_name_headers: tuple[str, ...]
    table_evaluative_headers: tuple[str, ...]
    table_keypoint_headers: tuple[str, ...]
    table_summary_headers: tuple[str, ...]
    table_target_headers: tuple[str, ...]


DEFAULT_LEXICON = Lexicon(
    section_patterns=(
        ("자주 묻는 질문", SECTION_FAQ),
        ("FAQ", SECTION_FAQ),
        ("Q&A", SECTION_FAQ),
        ("글을 마치며", SECTION_CLOSING),
        ("마치며", SECTION_CLOSING),
        ("마무리", SECTION_CLOSING),
        ("핵심만 콕!", SECTION_SUMMARY),
        ("한눈에 보는 요약", SECTION_SUMMARY),
        ("요약표", SECTION_SUMMARY),
        ("이란 무엇", SECTION_TOPIC),
        ("란 무엇인가", SECTION_TOPIC),
        ("알아야 할 기본", SECTION_TOPIC),
        ("이란?", SECTION_TOPIC),
        ("제품 비교표", SECTION_COMPARISON),
        ("스펙 비교", SECTION_COMPARISON),
        ("비교표", SECTION_COMPARISON),
        ("어떤 제품을 골라야", SECTION_GUIDE),
        ("구매 가이드", SECTION_GUIDE),
        ("선택 가이드", SECTION_GUIDE),
        ("고르는 법", SECTION_GUIDE),
        ("선택 팁", SECTION_GUIDE),
        ("제품 상세 리뷰", SECTION_PRODUCTS),
        ("상세 리뷰", SECTION_PRODUCTS),
        ("TOP 5", SECTION_PRODUCTS),
        ("TOP5", SECTION_PRODUCTS),
        ("추천 제품", SECTION_PRODUCTS),
    ),
    subsection_keywords=(
        (SUB_SPECS, ("주요 스펙", "스펙", "사양", "제원", "spec")),
        (SUB_PROS, ("장점", "좋은 점", "pros")),
        (SUB_CONS, ("단점", "아쉬운 점", "cons")),
        (SUB_RECOMMEND, ("이런 분께", "추천 대상", "추천", "recommend")),
    ),
    spec_keywords=(
        "cpu",
        "gpu",
        "ram",
        "ssd",
        "hdd",
        "os",
        "메모리",
        "저장",
        "디스플레이",
        "화면",
        "해상도",
        "무게",
        "배터리",
        "크기",
        "사이즈",
        "용량",
        "프로세서",
        "칩셋",
        "포트",
        "출력",
        "소비전력",
        "색상",
        "가격",
    ),
    positive_keywords=(
        "좋",
        "뛰어",
        "우수",
        "훌륭",
        "탁월",
        "가성비",
        "빠르",
        "빠른",
        "가볍",
        "가벼운",
        "넉넉",
        "만족",
        "편리",
        "편하",
        "강력",
        "선명",
        "조용",
        "오래가",
        "합리적",
        "great",
        "good",
        "excellent",
    ),
    negative_keywords=(
        "아쉽",
        "아쉬운",
        "부족",
        "무겁",
        "무거운",
        "비싸",
        "비싼",
        "발열",
        "소음",
        "느리",
        "느린",
        "심함",
        "심하",
        "불편",
        "떨어",
        "짧",
        "bad",
        "poor",
    ),
    boilerplate_phrases=(
        "쿠팡파트너스",
        "쿠팡 파트너스",
        "파트너스 활동",
        "수수료를 지급받",
        "수수료를 제공받",
    ),
    purchase_phrases=(
        "최저가 보러가기",
        "최저가 확인",
        "가격 보러가기",
        "구매하러 가기",
        "구매 링크",
    ),
    marketplace_hosts=(
        "coupang.com",
        "coupa.ng",
        "smartstore.naver.com",
        "brand.naver.com",
        "11st.co.kr",
        "gmarket.co.kr",
        "auction.co.kr",
        "amazon.com",
        "aliexpress.com",
    ),
    table_name_headers=("제품명", "제품", "모델", "상품", "이름", "name", "product"),
    table_evaluative_headers=(
        "핵심",
        "장점",
        "특징",
        "한 줄",
        "한줄",
        "평",
        "추천",
        "대상",
        "점수",
    ),
    table_keypoint_headers=("핵심", "장점", "특징"),
    table_summary_headers=("한 줄", "한줄", "평"),
    table_target_headers=("추천", "대상"),
)


def _require_list(name: str, value) -> list:
    if not isinstance(value, list):
        raise RuntimeError(f"키워드 사전 값 형식 오류: {name} (list 아님)")
    return value


def _string_list(name: str, value) -> tuple[str, ...]:
    return tuple(str(item) for item in _require_list(name, value))


def _coerce_value(name: str, value):
    if name == "section_patterns":
        pairs = []
        for item in _require_list(name, value):
            if not isinstance(item, list) or len(item) != 2:
                raise RuntimeError(f"섹션 패턴 형식 오류: {item!r} ([패턴, 섹션] 아님)")
            pattern, section = item
            if section not in SECTIONS:
                raise RuntimeError(f"알 수 없는 섹션: {section}")
            pairs.append((str(pattern), section))
        return tuple(pairs)
    if name == "subsection_keywords":
        if isinstance(value, dict):
            items = list(value.items())
        else:
            items = _require_list(name, value)
        pairs = []
        for item in items:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise RuntimeError(f"하위 섹션 키워드 형식 오류: {item!r}")
            sub_section, keywords = item
            if sub_section not in SUB_SECTIONS:
                raise RuntimeError(f"알 수 없는 하위 섹션: {sub_section}")
            pairs.append((sub_section, _string_list(f"{name}.{sub_section}", keywords)))
        return tuple(pairs)
    return _string_list(name, value)


def load_lexicon(path: Optional[Path], base: Lexicon = DEFAULT_LEXICON) -> Lexicon:
    if path is None:
        return base
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        LOGGER.warning("키워드 사전 파일 없음: %s (기본값 사용)", path)
        return base
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"키워드 사전 JSON 오류: {path} ({exc})") from exc
    if not isinstance(raw, dict):
        raise RuntimeError(f"키워드 사전 형식 오류: {path} (object 아님)")
    known = {item.name for item in fields(Lexicon)}
    overrides = {}
    for name, value in raw.items():
        if name not in known:
            LOGGER.warning("키워드 사전 항목 무시: %s", name)
            continue
        overrides[name] = _coerce_value(name, value)
    if overrides:
        LOGGER.info("키워드 사전 적용: %s (%s)", path, ", ".join(sorted(overrides)))
    return replace(base, **overrides)

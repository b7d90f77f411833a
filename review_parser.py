"""Classify a Notion review page's blocks into a structured ParseResult.

The parser walks the top-level blocks once, carrying a small ParserState:
the current section (intro, topic, summary, products, guide, comparison,
closing, faq), the product being described and the active sub-section
(specs, pros, cons, recommend). Headings move the state; every other block
is routed by it. After the walk, duplicate products are merged and the
summary table fills in per-product summary fields.
"""

import re
from typing import Iterable, Optional

from bullet_classifier import classify_bullet
from lexicon import (
    DEFAULT_LEXICON,
    SECTION_CLOSING,
    SECTION_COMPARISON,
    SECTION_FAQ,
    SECTION_GUIDE,
    SECTION_INTRO,
    SECTION_PRODUCTS,
    SECTION_SUMMARY,
    SECTION_TOPIC,
    SUB_CONS,
    SUB_PROS,
    SUB_RECOMMEND,
    SUB_SPECS,
    Lexicon,
)
from log import LOGGER
from models import (
    CALLOUT,
    HEADING2,
    HEADING3,
    LIST_TYPES,
    PARAGRAPH,
    QUOTE,
    TEXT_TYPES,
    TOGGLE,
    Block,
    FaqEntry,
    ParserState,
    ParseResult,
    Product,
    Spec,
    TableBlock,
    TextBlock,
)
from product_merge import dedupe_products, enrich_from_summary_table
from settings import HEADING_REFINE_RATIO, SHORT_LABEL_MAX_CHARS
from utils import (
    contains_any,
    extract_url,
    find_url_in_text,
    has_digit,
    is_host_in,
    join_text,
    name_tokens,
    normalize_name_key,
    normalize_whitespace,
    split_key_value,
    strip_markup,
    token_overlap,
)

PRODUCT_HEADING_PATTERN = re.compile(r"^(\d+)\.\s*(.+)")
QUESTION_PREFIX_PATTERN = re.compile(r"^Q\d*(?![A-Za-z])\s*[.:：)]?\s*")
ANSWER_PREFIX_PATTERN = re.compile(r"^A\d*(?![A-Za-z])\s*[.:：)]?\s*")
TOGGLE_MARKER_PATTERN = re.compile(r"^[\s▶▷►•·\-*]+")
RECOMMEND_LABEL_PATTERN = re.compile(
    r"^(?:이런\s*분께(?:\s*추천(?:합니다)?)?|추천\s*대상)\s*[:：]\s*(.+)$"
)
RECOMMEND_SENTENCE_PATTERN = re.compile(
    r"^(.+?분)(?:께|에게)\s*(?:강력\s*)?추천(?:합니다|해요|드려요|드립니다)?\s*[.!]?$"
)
# Headings inside these sections are never product names.
NON_PRODUCT_SECTIONS = {
    SECTION_GUIDE,
    SECTION_COMPARISON,
    SECTION_SUMMARY,
    SECTION_CLOSING,
    SECTION_FAQ,
}
TEXT_FIELD_BY_SECTION = {
    SECTION_INTRO: "intro",
    SECTION_TOPIC: "topic_explanation",
    SECTION_GUIDE: "selection_guide",
    SECTION_CLOSING: "closing",
}
LIST_FIELD_BY_SUB_SECTION = {
    SUB_PROS: "pros",
    SUB_CONS: "cons",
    SUB_RECOMMEND: "recommend_for",
}


def match_section(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> Optional[str]:
    lowered = text.lower()
    for pattern, section in lexicon.section_patterns:
        if pattern.lower() in lowered:
            return section
    return None


def match_numbered_heading(text: str) -> Optional[tuple[int, str]]:
    match = PRODUCT_HEADING_PATTERN.match(text.strip())
    if not match:
        return None
    name = normalize_whitespace(match.group(2))
    if not name:
        return None
    return int(match.group(1)), name


def find_sub_section(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> Optional[str]:
    for sub_section, keywords in lexicon.subsection_keywords:
        if contains_any(text, keywords):
            return sub_section
    return None


def match_sub_section_label(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> Optional[str]:
    cleaned = strip_markup(text)
    if not cleaned or len(cleaned) > SHORT_LABEL_MAX_CHARS:
        return None
    return find_sub_section(cleaned, lexicon)


def match_labelled_line(
    text: str, lexicon: Lexicon = DEFAULT_LEXICON
) -> Optional[tuple[str, str]]:
    pair = split_key_value(text)
    if not pair:
        return None
    label, value = pair
    sub_section = match_sub_section_label(label, lexicon)
    if sub_section not in LIST_FIELD_BY_SUB_SECTION:
        return None
    return sub_section, value


def parse_recommend_phrase(text: str) -> Optional[str]:
    match = RECOMMEND_LABEL_PATTERN.match(text)
    if match:
        return match.group(1).strip()
    match = RECOMMEND_SENTENCE_PATTERN.match(text)
    if match:
        return match.group(1).strip()
    return None


def is_same_product(current_name: str, new_name: str) -> bool:
    if normalize_name_key(current_name) == normalize_name_key(new_name):
        return True
    shorter = min(len(name_tokens(current_name)), len(name_tokens(new_name)))
    if shorter == 0:
        return False
    return token_overlap(current_name, new_name) >= HEADING_REFINE_RATIO * shorter


def is_summary_table_header(header: list[str], lexicon: Lexicon = DEFAULT_LEXICON) -> bool:
    if len(header) < 2:
        return False
    if not contains_any(header[0], lexicon.table_name_headers):
        return False
    return any(contains_any(cell, lexicon.table_evaluative_headers) for cell in header[1:])


def current_product(state: ParserState, result: ParseResult) -> Optional[Product]:
    if state.product_index is None:
        return None
    return result.products[state.product_index]


def start_product(
    state: ParserState,
    result: ParseResult,
    name: str,
    product_id: Optional[int] = None,
) -> Product:
    if product_id is None:
        product_id = len(result.products) + 1
    product = Product(id=product_id, name=name)
    result.products.append(product)
    if state.section != SECTION_PRODUCTS:
        state.enter_section(SECTION_PRODUCTS)
    state.product_index = len(result.products) - 1
    state.sub_section = None
    LOGGER.debug("제품 시작: %s. %s", product_id, name)
    return product


def refine_product(product: Product, name: str) -> None:
    if len(name) > len(product.name):
        LOGGER.debug("제품명 보강: %s -> %s", product.name, name)
        product.name = name


def handle_product_heading(
    text: str,
    state: ParserState,
    result: ParseResult,
    lexicon: Lexicon,
) -> None:
    numbered = match_numbered_heading(text)
    product = current_product(state, result)
    if product is not None:
        if numbered:
            product_id, name = numbered
            if product_id == product.id:
                refine_product(product, name)
                state.sub_section = None
                return
        else:
            if is_same_product(product.name, text):
                refine_product(product, text)
                state.sub_section = None
                return
            cleaned = strip_markup(text)
            if len(cleaned) <= SHORT_LABEL_MAX_CHARS and not has_digit(cleaned):
                state.sub_section = find_sub_section(cleaned, lexicon)
                return
    if numbered:
        product_id, name = numbered
        start_product(state, result, name, product_id)
        return
    if state.section == SECTION_PRODUCTS:
        start_product(state, result, text)
        return
    LOGGER.warning("인식되지 않은 소제목(무시): %s", text)


def handle_heading2(
    block: TextBlock, state: ParserState, result: ParseResult, lexicon: Lexicon
) -> None:
    text = normalize_whitespace(block.text)
    if not text:
        return
    section = match_section(text, lexicon)
    if section:
        state.enter_section(section)
        if section == SECTION_TOPIC and not result.topic_title:
            result.topic_title = text
        LOGGER.debug("섹션 전환: %s (%s)", section, text)
        return
    if state.section == SECTION_PRODUCTS and match_numbered_heading(text):
        handle_product_heading(text, state, result, lexicon)
        return
    LOGGER.warning("인식되지 않은 제목(무시): %s", text)


def handle_heading3(
    block: TextBlock, state: ParserState, result: ParseResult, lexicon: Lexicon
) -> None:
    text = normalize_whitespace(block.text)
    if not text:
        return
    if state.section in NON_PRODUCT_SECTIONS:
        LOGGER.debug("소제목 무시(%s 섹션): %s", state.section, text)
        return
    handle_product_heading(text, state, result, lexicon)


def handle_table(
    block: TableBlock, state: ParserState, result: ParseResult, lexicon: Lexicon
) -> None:
    rows = [[normalize_whitespace(cell) for cell in row] for row in block.rows]
    if len(rows) < 2:
        LOGGER.warning("표 무시: 행 부족 (%s행)", len(rows))
        return
    header = rows[0]
    if not any(header):
        LOGGER.warning("표 무시: 머리글 없음")
        return
    if not result.summary_table and is_summary_table_header(header, lexicon):
        result.summary_table = rows
        LOGGER.debug("요약 표 감지: %s", ", ".join(header))
        return
    if result.comparison_table:
        LOGGER.debug("비교표 교체: %s", ", ".join(header))
    result.comparison_table = rows


def append_section_text(state: ParserState, result: ParseResult, text: str) -> None:
    field_name = TEXT_FIELD_BY_SECTION.get(state.section)
    if not field_name:
        LOGGER.debug("본문 무시(%s 섹션): %s", state.section, text)
        return
    setattr(result, field_name, join_text(getattr(result, field_name), text))


def route_faq_line(text: str, state: ParserState, result: ParseResult) -> None:
    cleaned = strip_markup(text) if text.startswith(("*", "_")) else text
    if ANSWER_PREFIX_PATTERN.match(cleaned) and state.faq_open:
        answer = ANSWER_PREFIX_PATTERN.sub("", cleaned, count=1).strip()
        faq = result.faqs[-1]
        faq.answer = join_text(faq.answer, answer, " ")
        return
    if QUESTION_PREFIX_PATTERN.match(cleaned) or "?" in cleaned:
        question = QUESTION_PREFIX_PATTERN.sub("", strip_markup(cleaned), count=1).strip()
        if question:
            result.faqs.append(FaqEntry(question=question))
            state.faq_open = True
        return
    if state.faq_open:
        answer = cleaned[1:].strip() if cleaned.startswith("-") else cleaned
        if answer:
            faq = result.faqs[-1]
            faq.answer = join_text(faq.answer, answer, " ")
        return
    LOGGER.debug("FAQ 본문 무시(질문 없음): %s", text)


def append_to_product_list(product: Product, sub_section: str, text: str) -> None:
    getattr(product, LIST_FIELD_BY_SUB_SECTION[sub_section]).append(text)


def route_product_text(
    text: str,
    product: Product,
    state: ParserState,
    lexicon: Lexicon,
    is_list_item: bool,
) -> None:
    sub_section = state.sub_section
    if sub_section != SUB_SPECS:
        labelled = match_labelled_line(text, lexicon)
        if labelled:
            state.sub_section, value = labelled
            append_to_product_list(product, state.sub_section, value)
            return
    if sub_section == SUB_SPECS:
        pair = split_key_value(text)
        if pair:
            product.specs.append(Spec(label=pair[0], value=pair[1]))
        elif is_list_item:
            classify_bullet(text, product, lexicon)
        else:
            product.description = join_text(product.description, text)
        return
    if sub_section in LIST_FIELD_BY_SUB_SECTION:
        append_to_product_list(product, sub_section, text)
        return
    recommend = parse_recommend_phrase(text)
    if recommend:
        product.recommend_for.append(recommend)
        return
    if is_list_item:
        classify_bullet(text, product, lexicon)
        return
    product.description = join_text(product.description, text)


def consume_buy_link(
    text: str, url: Optional[str], product: Optional[Product], lexicon: Lexicon
) -> bool:
    if product is None:
        return False
    if url and is_host_in(url, lexicon.marketplace_hosts):
        product.buy_url = url
        return True
    if contains_any(text, lexicon.purchase_phrases):
        link = find_url_in_text(text) or url
        if link:
            product.buy_url = link
        return True
    return False


def route_text(
    text: str,
    url: Optional[str],
    state: ParserState,
    result: ParseResult,
    lexicon: Lexicon,
    is_list_item: bool = False,
) -> None:
    text = (text or "").strip()
    if not text:
        return
    if contains_any(text, lexicon.boilerplate_phrases):
        LOGGER.debug("고지 문구 제외: %s", text)
        return
    product = current_product(state, result)
    if consume_buy_link(text, url, product, lexicon):
        return
    if state.section == SECTION_FAQ:
        route_faq_line(text, state, result)
        return
    if product is None:
        if state.section == SECTION_PRODUCTS:
            LOGGER.debug("본문 무시(제품 없음): %s", text)
            return
        append_section_text(state, result, text)
        return
    if not split_key_value(text):
        label = match_sub_section_label(text, lexicon)
        if label:
            state.sub_section = label
            return
    route_product_text(text, product, state, lexicon, is_list_item)


def collect_answer_text(blocks: Iterable[Block]) -> list[str]:
    parts: list[str] = []
    for block in blocks:
        if not isinstance(block, TextBlock):
            continue
        if block.type in TEXT_TYPES or block.type in LIST_TYPES:
            text = block.text.strip()
            if text:
                parts.append(text)
        parts.extend(collect_answer_text(block.children))
    return parts


def handle_toggle(
    block: TextBlock, state: ParserState, result: ParseResult, lexicon: Lexicon
) -> None:
    title = normalize_whitespace(block.text)
    if state.section == SECTION_FAQ or "?" in title:
        question = TOGGLE_MARKER_PATTERN.sub("", title)
        question = QUESTION_PREFIX_PATTERN.sub("", question, count=1).strip()
        if not question:
            return
        answer = " ".join(collect_answer_text(block.children)).strip()
        answer = ANSWER_PREFIX_PATTERN.sub("", answer, count=1).strip()
        result.faqs.append(FaqEntry(question=question, answer=answer))
        state.faq_open = False
        return
    route_text(block.text, extract_url(block.runs), state, result, lexicon)
    for child in block.children:
        process_block(child, state, result, lexicon)


def classify_child(
    child: Block, state: ParserState, result: ParseResult, lexicon: Lexicon
) -> None:
    product = current_product(state, result)
    routable = isinstance(child, TextBlock) and child.type in LIST_TYPES | TEXT_TYPES
    # Children with their own children (labels, nested lists) take the full routing path.
    if product is None or not routable or child.children:
        process_block(child, state, result, lexicon)
        return
    text = child.text.strip()
    if not text or contains_any(text, lexicon.boilerplate_phrases):
        return
    if consume_buy_link(text, extract_url(child.runs), product, lexicon):
        return
    classify_bullet(text, product, lexicon)


def handle_list_item(
    block: TextBlock, state: ParserState, result: ParseResult, lexicon: Lexicon
) -> None:
    text = block.text.strip()
    if block.children and current_product(state, result) is not None:
        label = None if split_key_value(text) else match_sub_section_label(text, lexicon)
        if label:
            state.sub_section = label
            for child in block.children:
                process_block(child, state, result, lexicon)
            return
        route_text(text, extract_url(block.runs), state, result, lexicon, is_list_item=True)
        for child in block.children:
            classify_child(child, state, result, lexicon)
        return
    route_text(text, extract_url(block.runs), state, result, lexicon, is_list_item=True)
    for child in block.children:
        process_block(child, state, result, lexicon)


def process_block(
    block: Block, state: ParserState, result: ParseResult, lexicon: Lexicon = DEFAULT_LEXICON
) -> None:
    if isinstance(block, TableBlock):
        handle_table(block, state, result, lexicon)
        return
    if block.type == HEADING2:
        handle_heading2(block, state, result, lexicon)
        return
    if block.type == HEADING3:
        handle_heading3(block, state, result, lexicon)
        return
    if block.type == TOGGLE:
        handle_toggle(block, state, result, lexicon)
        return
    if block.type in LIST_TYPES:
        handle_list_item(block, state, result, lexicon)
        return
    if block.type in (PARAGRAPH, QUOTE, CALLOUT):
        route_text(block.text, extract_url(block.runs), state, result, lexicon)
        for child in block.children:
            process_block(child, state, result, lexicon)
        return
    LOGGER.debug("지원하지 않는 블록 무시: %s", block.type)


def parse_review(
    blocks: Iterable[Block],
    title: str = "",
    date: str = "",
    excerpt: str = "",
    lexicon: Lexicon = DEFAULT_LEXICON,
) -> ParseResult:
    result = ParseResult(title=title, date=date, excerpt=excerpt)
    state = ParserState()
    for block in blocks:
        process_block(block, state, result, lexicon)
    result.products = dedupe_products(result.products)
    if result.summary_table and result.products:
        enriched = enrich_from_summary_table(result.summary_table, result.products, lexicon)
        LOGGER.debug("요약 표 보강: %s개 제품", enriched)
    return result

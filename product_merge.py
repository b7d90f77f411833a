import copy
from typing import Optional

from lexicon import DEFAULT_LEXICON, Lexicon
from log import LOGGER
from models import Product
from settings import TABLE_MATCH_MIN_SCORE
from utils import contains_any, normalize_name_key, token_overlap

SCALAR_FIELDS = ("summary", "key_point", "target", "buy_url", "description")
LIST_FIELDS = ("specs", "pros", "cons", "recommend_for")


def merge_product(primary: Product, duplicate: Product) -> Product:
    merged = copy.deepcopy(primary)
    for name in SCALAR_FIELDS:
        if not getattr(merged, name):
            setattr(merged, name, getattr(duplicate, name))
    # Lists are taken whole from one source; concatenating would repeat entries.
    for name in LIST_FIELDS:
        if not getattr(merged, name):
            setattr(merged, name, copy.deepcopy(getattr(duplicate, name)))
    return merged


def dedupe_products(products: list[Product]) -> list[Product]:
    merged: list[Product] = []
    index_by_key: dict[str, int] = {}
    for product in products:
        key = normalize_name_key(product.name)
        if key and key in index_by_key:
            idx = index_by_key[key]
            merged[idx] = merge_product(merged[idx], product)
            LOGGER.info("중복 제품 병합: %s", product.name)
            continue
        if key:
            index_by_key[key] = len(merged)
        merged.append(copy.deepcopy(product))
    for rank, product in enumerate(merged, start=1):
        product.id = rank
    return merged


def find_column(
    header: list[str], keywords: tuple[str, ...], taken: set[int]
) -> Optional[int]:
    for idx, cell in enumerate(header):
        if idx in taken:
            continue
        if contains_any(cell, keywords):
            taken.add(idx)
            return idx
    return None


def get_cell(row: list[str], idx: Optional[int]) -> str:
    if idx is None or idx >= len(row):
        return ""
    return (row[idx] or "").strip()


def match_rows_to_products(
    rows: list[list[str]], products: list[Product], name_idx: Optional[int]
) -> dict[int, int]:
    """Map data-row index to product index, claiming each product at most once."""
    claimed: set[int] = set()
    matches: dict[int, int] = {}
    if name_idx is not None:
        for row_idx, row in enumerate(rows):
            name = get_cell(row, name_idx)
            if not name:
                continue
            best_idx: Optional[int] = None
            best_score = 0
            for product_idx, product in enumerate(products):
                if product_idx in claimed:
                    continue
                score = token_overlap(name, product.name)
                if score > best_score:
                    best_idx, best_score = product_idx, score
            if best_idx is not None and best_score >= TABLE_MATCH_MIN_SCORE:
                claimed.add(best_idx)
                matches[row_idx] = best_idx
    for row_idx, row in enumerate(rows):
        if row_idx in matches or not any(cell.strip() for cell in row):
            continue
        if row_idx < len(products) and row_idx not in claimed:
            claimed.add(row_idx)
            matches[row_idx] = row_idx
    return matches


def enrich_from_summary_table(
    table: list[list[str]],
    products: list[Product],
    lexicon: Lexicon = DEFAULT_LEXICON,
) -> int:
    if len(table) < 2 or not products:
        return 0
    header = table[0]
    taken: set[int] = set()
    name_idx = find_column(header, lexicon.table_name_headers, taken)
    columns = {
        "key_point": find_column(header, lexicon.table_keypoint_headers, taken),
        "summary": find_column(header, lexicon.table_summary_headers, taken),
        "target": find_column(header, lexicon.table_target_headers, taken),
    }
    rows = table[1:]
    enriched = 0
    for row_idx, product_idx in sorted(match_rows_to_products(rows, products, name_idx).items()):
        product = products[product_idx]
        changed = False
        for field_name, column_idx in columns.items():
            value = get_cell(rows[row_idx], column_idx)
            if value and not getattr(product, field_name):
                setattr(product, field_name, value)
                changed = True
        if changed:
            enriched += 1
    return enriched

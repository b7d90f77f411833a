import json
import re

from models import FaqEntry, ParseResult, Product, Spec
from page_writer import (
    AFFILIATE_NOTICE,
    build_comparison_view,
    escape_markup,
    generate_slug,
    render_astro_page,
    write_page,
)


def sample_result(**overrides):
    values = dict(
        title="2024 가성비 노트북 TOP5",
        date="2024-05-01",
        intro="첫 줄\n둘째 줄",
        topic_title="가성비 노트북이란?",
        topic_explanation="문단 하나\n문단 둘",
        products=[
            Product(
                id=1,
                name="LG 그램 16",
                buy_url="https://link.coupang.com/a/x",
                specs=[Spec("CPU", "코어 울트라 5"), Spec("무게", "1.2kg")],
                pros=["가벼움"],
            )
        ],
        faqs=[FaqEntry("무게는?", "1.2kg입니다.")],
    )
    values.update(overrides)
    return ParseResult(**values)


def extract_const(page, name):
    match = re.search(rf"const {name} = (.*?);\n", page, re.S)
    return json.loads(match.group(1))


def test_generate_slug_keeps_hangul_and_digits():
    assert generate_slug("2024 가성비 노트북 TOP5!") == "2024-가성비-노트북-top5"
    assert generate_slug("  A -- B  ") == "a-b"
    assert generate_slug("!!!") == ""


def test_escape_markup_escapes_braces():
    assert escape_markup("<b>{x}</b>") == "&lt;b&gt;&#123;x&#125;&lt;/b&gt;"
    assert escape_markup('say "hi"', quote=True) == "say &quot;hi&quot;"


def test_rendered_page_embeds_products_and_faqs():
    page = render_astro_page(sample_result())

    assert "__" not in page.split("<style>")[0]
    products = extract_const(page, "products")
    assert products[0]["name"] == "LG 그램 16"
    assert products[0]["buyUrl"] == "https://link.coupang.com/a/x"
    assert products[0]["specs"][0] == {"label": "CPU", "value": "코어 울트라 5"}
    assert extract_const(page, "faqs") == [{"question": "무게는?", "answer": "1.2kg입니다."}]
    assert "<h1>2024 가성비 노트북 TOP5</h1>" in page
    assert "첫 줄<br />둘째 줄" in page
    assert "<p>문단 하나</p>" in page
    assert AFFILIATE_NOTICE in page


def test_missing_sections_use_defaults():
    page = render_astro_page(ParseResult(title="제목"))

    assert "오늘은 제목에 대해 말씀드릴게요." in page
    assert "<h2>소개</h2>" in page
    assert "선택 가이드" not in page
    assert extract_const(page, "products") == []


def test_guide_section_rendered_when_present():
    page = render_astro_page(sample_result(selection_guide="용도부터 정하세요"))

    assert "<h2>선택 가이드</h2>" in page
    assert "<p>용도부터 정하세요</p>" in page


def test_comparison_view_prefers_comparison_table():
    result = sample_result(
        comparison_table=[["제품", "CPU", "무게"], ["LG 그램 16", "i5", ""]],
    )

    rows, specs = build_comparison_view(result)

    assert specs == [{"key": "cpu", "label": "CPU"}, {"key": "무게", "label": "무게"}]
    assert rows == [{"name": "LG 그램 16", "cpu": "i5", "무게": "-"}]


def test_comparison_view_falls_back_to_product_specs():
    long_name = "아주 긴 이름의 게이밍 노트북 모델"
    result = sample_result(
        products=[Product(id=1, name=long_name, specs=[Spec("프로세서", "M3"), Spec("무게", "1.2kg")])]
    )

    rows, specs = build_comparison_view(result)

    assert [spec["key"] for spec in specs] == ["cpu", "gpu", "ram", "storage", "display", "weight"]
    assert rows[0]["name"] == long_name[:15] + "..."
    assert rows[0]["cpu"] == "M3"
    assert rows[0]["weight"] == "1.2kg"
    assert rows[0]["gpu"] == "-"


def test_write_page_creates_file(tmp_path):
    pages_dir = tmp_path / "pages"

    path = write_page(sample_result(), pages_dir, "gram")

    assert path == pages_dir / "gram.astro"
    assert "LG 그램 16" in path.read_text(encoding="utf-8")


def test_placeholder_text_in_content_is_left_alone():
    result = sample_result(
        title="진짜 제목",
        faqs=[FaqEntry("__TITLE__ 가 뭐죠?", "__INTRO__ 그대로")],
    )

    page = render_astro_page(result)

    assert extract_const(page, "faqs") == [{"question": "__TITLE__ 가 뭐죠?", "answer": "__INTRO__ 그대로"}]
    assert "<h1>진짜 제목</h1>" in page

import pytest

from bullet_classifier import DESCRIPTION, classify_bullet, is_spec_line
from lexicon import DEFAULT_LEXICON, SUB_CONS, SUB_PROS, SUB_SPECS
from models import Product, Spec


@pytest.fixture
def product():
    return Product(id=1, name="노트북 A")


def test_mixed_sentiment_goes_to_description(product):
    field = classify_bullet("화면은 좋지만 발열이 아쉽다", product)

    assert field == DESCRIPTION
    assert product.description == "화면은 좋지만 발열이 아쉽다"
    assert product.pros == []
    assert product.cons == []


@pytest.mark.parametrize(
    "text, expected",
    [
        ("키보드 타건감이 훌륭함", SUB_PROS),
        ("가성비 최고", SUB_PROS),
        ("배터리가 부족함", SUB_CONS),
        ("팬 소음이 큼", SUB_CONS),
        ("2024년 출시 모델", DESCRIPTION),
    ],
)
def test_single_sided_sentiment(product, text, expected):
    assert classify_bullet(text, product) == expected


def test_spec_shaped_line_wins_over_sentiment(product):
    field = classify_bullet("무게: 가벼운 1.1kg", product)

    assert field == SUB_SPECS
    assert product.specs == [Spec(label="무게", value="가벼운 1.1kg")]
    assert product.pros == []


def test_spec_line_needs_keyword_or_early_colon():
    assert is_spec_line("CPU: 인텔 코어 울트라 7")
    assert is_spec_line("색: 블랙")
    assert not is_spec_line("이 제품의 가장 큰 특징이라면 역시: 무게")
    assert not is_spec_line("콜론 없는 문장")
    assert not is_spec_line("값 없음:")


def test_description_lines_are_newline_joined(product):
    classify_bullet("첫 줄", product)
    classify_bullet("둘째 줄", product)

    assert product.description == "첫 줄\n둘째 줄"


def test_custom_lexicon_changes_classification(product):
    from dataclasses import replace

    lexicon = replace(DEFAULT_LEXICON, positive_keywords=("튼튼",), negative_keywords=())

    assert classify_bullet("튼튼한 힌지", product, lexicon) == SUB_PROS
    assert classify_bullet("발열이 심함", product, lexicon) == DESCRIPTION

import json

import pytest

from lexicon import DEFAULT_LEXICON, SECTION_GUIDE, load_lexicon
from review_parser import match_section


def write_json(path, payload):
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def test_no_path_returns_default():
    assert load_lexicon(None) is DEFAULT_LEXICON


def test_missing_file_falls_back_to_default(tmp_path, caplog):
    with caplog.at_level("WARNING", logger="rich-page-generator"):
        lexicon = load_lexicon(tmp_path / "missing.json")

    assert lexicon is DEFAULT_LEXICON
    assert "키워드 사전 파일 없음" in caplog.text


def test_overrides_replace_only_named_tables(tmp_path):
    path = write_json(
        tmp_path / "lexicon.json",
        {
            "section_patterns": [["고르는 요령", "guide"]],
            "purchase_phrases": ["지금 구매"],
            "subsection_keywords": {"pros": ["강점"]},
        },
    )

    lexicon = load_lexicon(path)

    assert lexicon.section_patterns == (("고르는 요령", SECTION_GUIDE),)
    assert lexicon.purchase_phrases == ("지금 구매",)
    assert lexicon.subsection_keywords == (("pros", ("강점",)),)
    assert lexicon.negative_keywords == DEFAULT_LEXICON.negative_keywords
    assert match_section("노트북 고르는 요령", lexicon) == SECTION_GUIDE
    assert match_section("자주 묻는 질문", lexicon) is None


def test_unknown_keys_are_ignored(tmp_path, caplog):
    path = write_json(tmp_path / "lexicon.json", {"colour": ["red"]})

    with caplog.at_level("WARNING", logger="rich-page-generator"):
        lexicon = load_lexicon(path)

    assert lexicon == DEFAULT_LEXICON
    assert "colour" in caplog.text


@pytest.mark.parametrize(
    "payload",
    [
        {"section_patterns": [["무언가", "appendix"]]},
        {"subsection_keywords": {"notes": ["메모"]}},
        ["not", "an", "object"],
        {"positive_keywords": "좋은"},
        {"section_patterns": [["패턴만"]]},
        {"section_patterns": "FAQ"},
        {"subsection_keywords": {"pros": "장점"}},
        {"subsection_keywords": [["pros"]]},
    ],
)
def test_invalid_overrides_raise(tmp_path, payload):
    path = write_json(tmp_path / "lexicon.json", payload)

    with pytest.raises(RuntimeError):
        load_lexicon(path)


def test_malformed_json_raises(tmp_path):
    path = tmp_path / "lexicon.json"
    path.write_text("{", encoding="utf-8")

    with pytest.raises(RuntimeError):
        load_lexicon(path)

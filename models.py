"""
Data structures shared by the fetcher, the review parser and the page writer.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from lexicon import SECTION_INTRO, SECTION_PRODUCTS

HEADING2 = "heading2"
HEADING3 = "heading3"
PARAGRAPH = "paragraph"
QUOTE = "quote"
CALLOUT = "callout"
BULLETED_ITEM = "bulleted_item"
NUMBERED_ITEM = "numbered_item"
TOGGLE = "toggle"
TABLE = "table"

LIST_TYPES = {BULLETED_ITEM, NUMBERED_ITEM}
TEXT_TYPES = {PARAGRAPH, QUOTE, CALLOUT}

TextRun = tuple[str, Optional[str]]


@dataclass
class TextBlock:
    """Any block carrying rich text: headings, paragraphs, list items, toggles."""
    type: str
    runs: list[TextRun] = field(default_factory=list)
    children: list["Block"] = field(default_factory=list)
    id: str = ""

    @property
    def text(self) -> str:
        return "".join(text for text, _ in self.runs)


@dataclass
class TableBlock:
    rows: list[list[str]] = field(default_factory=list)
    id: str = ""
    type: str = TABLE


Block = Union[TextBlock, TableBlock]


@dataclass
class Spec:
    label: str
    value: str


@dataclass
class FaqEntry:
    question: str
    answer: str = ""


@dataclass
class Product:
    id: int
    name: str
    summary: str = ""
    key_point: str = ""
    target: str = ""
    buy_url: str = ""
    description: str = ""
    specs: list[Spec] = field(default_factory=list)
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)
    recommend_for: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "summary": self.summary,
            "keyPoint": self.key_point,
            "target": self.target,
            "buyUrl": self.buy_url,
            "description": self.description,
            "specs": [{"label": spec.label, "value": spec.value} for spec in self.specs],
            "pros": list(self.pros),
            "cons": list(self.cons),
            "recommendFor": list(self.recommend_for),
        }


@dataclass
class ParseResult:
    title: str = ""
    date: str = ""
    excerpt: str = ""
    intro: str = ""
    topic_title: str = ""
    topic_explanation: str = ""
    summary_table: list[list[str]] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    selection_guide: str = ""
    comparison_table: list[list[str]] = field(default_factory=list)
    closing: str = ""
    faqs: list[FaqEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "date": self.date,
            "excerpt": self.excerpt,
            "intro": self.intro,
            "topicTitle": self.topic_title,
            "topicExplanation": self.topic_explanation,
            "summaryTable": [list(row) for row in self.summary_table],
            "products": [product.to_dict() for product in self.products],
            "selectionGuide": self.selection_guide,
            "comparisonTable": [list(row) for row in self.comparison_table],
            "closing": self.closing,
            "faqs": [{"question": faq.question, "answer": faq.answer} for faq in self.faqs],
        }


@dataclass
class ParserState:
    section: str = SECTION_INTRO
    # Index into ParseResult.products; only set while section == products.
    product_index: Optional[int] = None
    sub_section: Optional[str] = None
    faq_open: bool = False

    def enter_section(self, section: str) -> None:
        self.section = section
        self.sub_section = None
        self.faq_open = False
        if section != SECTION_PRODUCTS:
            self.product_index = None

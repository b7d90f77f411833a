from lexicon import DEFAULT_LEXICON, SUB_CONS, SUB_PROS, SUB_SPECS, Lexicon
from models import Product, Spec
from settings import SPEC_COLON_MAX_INDEX
from utils import contains_any, join_text, split_key_value

DESCRIPTION = "description"


def is_spec_line(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> bool:
    pair = split_key_value(text)
    if not pair:
        return False
    label, _ = pair
    if contains_any(label, lexicon.spec_keywords):
        return True
    return text.find(":") < SPEC_COLON_MAX_INDEX


def score_sentiment(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> tuple[bool, bool]:
    return (
        contains_any(text, lexicon.positive_keywords),
        contains_any(text, lexicon.negative_keywords),
    )


def classify_bullet(text: str, product: Product, lexicon: Lexicon = DEFAULT_LEXICON) -> str:
    """Route an unlabelled bullet into ``product`` and return the field it landed in.

    Spec-shaped lines win first. Otherwise a line is a pro or a con only when
    exactly one lexicon matches; mixed or neutral lines go to the description.
    """
    if is_spec_line(text, lexicon):
        label, value = split_key_value(text)
        product.specs.append(Spec(label=label, value=value))
        return SUB_SPECS
    positive, negative = score_sentiment(text, lexicon)
    if negative and not positive:
        product.cons.append(text)
        return SUB_CONS
    if positive and not negative:
        product.pros.append(text)
        return SUB_PROS
    product.description = join_text(product.description, text)
    return DESCRIPTION

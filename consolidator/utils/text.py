import re
import warnings

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning


def tokens(text):
    """Lowercase word tokens with punctuation removed: "Connie's Lounge!" -> {"connies", "lounge"}."""
    if not text:
        return set()
    text = re.sub(r"[^\w\s]", "", str(text).lower())
    return set(text.split())


def jaccard(a, b):
    """Token-set Jaccard index of two strings."""
    set_a = tokens(a)
    set_b = tokens(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def collapse_whitespace(text):
    return re.sub(r"\s+", " ", text).strip()


def strip_markup(text):
    """Drop HTML tags and decode entities left behind by scrapers."""
    if "<" not in text and "&" not in text:
        return text
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        return BeautifulSoup(text, "html.parser").get_text(" ")


def split_camel_case(text):
    """Re-insert spaces lost when scraped blocks are joined: "eventJoin us" -> "event Join us"."""
    return re.sub(r"([a-z])([A-Z])", r"\1 \2", text)


def capitalize_first(text):
    return text[:1].upper() + text[1:] if text else text


def clamp(text, limit):
    return text[:limit].rstrip() if text and len(text) > limit else text

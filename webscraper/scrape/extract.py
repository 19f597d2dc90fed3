"""DOM extraction from rendered HTML (BeautifulSoup)."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from soupsieve import SelectorSyntaxError

from .errors import ExtractionError

logger = logging.getLogger(__name__)

IGNORED_TAGS = frozenset({"script", "style", "meta", "noscript", "head", "svg", "canvas"})
HREF_TAGS = frozenset({"link"})
SRC_TAGS = frozenset({"iframe", "img", "video", "audio", "source"})

_NON_WORD_RE = re.compile(r"[^\w]+", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_key(key: str) -> str:
    """Normalise an attribute/column name to ``lower_snake`` form.

    >>> sanitize_key("  Data-Item ID ")
    'data_item_id'
    """
    return _NON_WORD_RE.sub("_", key.strip().lower()).strip("_")


def _attr_value(element: Tag, name: str) -> str:
    value = element.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _direct_text(element: Tag) -> str:
    """Text from the element's own text nodes only, whitespace collapsed."""
    text = "".join(
        str(child)
        for child in element.children
        if isinstance(child, NavigableString) and not isinstance(child, PreformattedString)
    )
    return _WHITESPACE_RE.sub(" ", text.strip())


def _iter_body_elements(soup: BeautifulSoup) -> Iterator[Tag]:
    """Yield every element under ``<body>`` not inside an ignored tag."""
    body = soup.body
    if body is None:
        return
    for element in body.find_all(True):
        if element.name in IGNORED_TAGS:
            continue
        if any(parent.name in IGNORED_TAGS for parent in element.parents):
            continue
        yield element


def extract_by_selector(
    html: str,
    selector: str,
    attributes: Sequence[str],
) -> list[dict[str, str]]:
    """Build one flat record per element matching *selector*.

    Each record holds ``tag_name``, ``text_content``, the requested
    *attributes* (empty string when absent) and any ``data-*`` attributes.
    Keys are passed through ``sanitize_key``; values are stripped.
    """
    soup = BeautifulSoup(html, "html.parser")
    try:
        matches = soup.select(selector)
    except SelectorSyntaxError as exc:
        raise ExtractionError(f"Invalid selector: {selector}") from exc

    records: list[dict[str, str]] = []
    for element in matches:
        base: dict[str, str] = {
            "tag_name": element.name.lower() if element.name else "node",
            "text_content": element.get_text().strip(),
        }
        for attr in attributes:
            base[attr] = _attr_value(element, attr)
        for attr in element.attrs:
            if attr.startswith("data-") and attr not in base:
                base[attr] = _attr_value(element, attr)

        records.append({sanitize_key(k): v.strip() for k, v in base.items()})

    logger.debug("selector extraction", extra={"selector": selector, "matches": len(records)})
    return records


def extract_by_tag(html: str) -> dict[str, list[str]]:
    """Group every non-empty element value under ``<body>`` by tag name.

    ``link`` contributes its ``href``, media/embed tags their ``src``, and
    everything else its direct text. Tags appear in first-seen order.
    """
    soup = BeautifulSoup(html, "html.parser")
    data_by_tag: dict[str, list[str]] = {}

    for element in _iter_body_elements(soup):
        tag = element.name.lower()
        if tag in HREF_TAGS:
            value = _attr_value(element, "href")
        elif tag in SRC_TAGS:
            value = _attr_value(element, "src")
        else:
            value = _direct_text(element)

        if not value:
            continue
        data_by_tag.setdefault(tag, []).append(value)

    return data_by_tag


def extract_visible_text(html: str) -> list[str]:
    soup = BeautifulSoup(html, "html.parser")
    texts = []
    for element in _iter_body_elements(soup):
        text = _direct_text(element)
        if text:
            texts.append(text)
    return texts

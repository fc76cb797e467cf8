"""
Field extraction for community pages.

Community pages are built by different templates, so the address is pulled
through an ordered cascade of strategies; the first one that returns a
non-empty string wins:

1. JSON-LD structured data
2. <meta> tags whose content looks like an address
3. Regex search over the visible page text
4. Elements whose class/attributes suggest address or contact info

The phone comes from the first ``tel:`` link, falling back to a phone regex
over the visible text.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Iterator, Optional

from bs4 import BeautifulSoup, Tag
from loguru import logger

from community_crawler.models import ExtractedContent
from community_crawler.scrapers.base import RenderedPage
from community_crawler.utils.normalize import digits_only, format_phone, normalize_whitespace

_SHORT_TYPES = r"(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Drive|Dr|Lane|Ln|Way)"
_LONG_TYPES = r"(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Drive|Dr|Lane|Ln|Way|Circle|Cir|Court|Ct|Place|Pl)"

# Spans are bounded and word-anchored.

# "<number> <up to 4 words> <street type>" ...then later... "<XX> <zip>"
STREET_SHAPE = re.compile(r"\b\d{1,6}\s+(?:[A-Za-z.']++\s+){0,4}?" + _SHORT_TYPES + r"\b", re.IGNORECASE)
REGION_POSTAL_SHAPE = re.compile(r"\b[A-Z]{2},?\s+\d{5}\b")

# Decreasing strictness; region codes stay upper case
TEXT_ADDRESS_PATTERNS = [
    re.compile(
        r"(\b\d{1,6}(?:\s+[A-Za-z.']++){0,5}?\s+" + _LONG_TYPES
        + r"\b\.?(?:,?\s+[A-Za-z]++){1,6}?,?\s+(?-i:[A-Z]{2})\s+\d{5}(?:-\d{4})?\b)",
        re.IGNORECASE,
    ),
    re.compile(
        r"(\b\d{1,6}[^,\n]{0,60}?\b" + _LONG_TYPES
        + r"\b\.?[^,\n]{0,40}+,\s*[A-Za-z]++(?:\s+[A-Za-z]++){0,3}+,\s*(?-i:[A-Z]{2})\s+\d{5}(?:-\d{4})?\b)",
        re.IGNORECASE,
    ),
]

PHONE_PATTERN = re.compile(r"(?:\+?1[-.\s]?)?\(?([0-9]{3})\)?[-.\s]?([0-9]{3})[-.\s]?([0-9]{4})")

ADDRESS_SELECTORS = [
    '[class*="address"]',
    '[class*="location"]',
    '[class*="contact"]',
    '[itemprop="address"]',
    ".property-info",
    ".contact-info",
]

_INVISIBLE_TAGS = {"script", "style", "noscript", "template", "head", "title", "meta"}

AddressStrategy = Callable[[BeautifulSoup, str], Optional[str]]


def looks_like_address(text: str) -> bool:
    """A street number + street type followed somewhere later by a region code and ZIP."""
    street = STREET_SHAPE.search(text)
    return bool(street and REGION_POSTAL_SHAPE.search(text, street.end()))


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def visible_text(soup: BeautifulSoup) -> str:
    """Text of the document without script/style content."""
    parts = []
    for node in soup.find_all(string=True):
        parent = node.parent
        if parent is not None and parent.name in _INVISIBLE_TAGS:
            continue
        stripped = node.strip()
        if stripped:
            parts.append(stripped)
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Address strategies
# ---------------------------------------------------------------------------

def _walk_json_ld(data: Any) -> Iterator[dict]:
    if isinstance(data, list):
        for item in data:
            yield from _walk_json_ld(item)
    elif isinstance(data, dict):
        yield data
        if "@graph" in data:
            yield from _walk_json_ld(data["@graph"])


def _assemble_address(address: Any) -> Optional[str]:
    if isinstance(address, list):
        for item in address:
            assembled = _assemble_address(item)
            if assembled:
                return assembled
        return None
    if isinstance(address, str):
        return address.strip() or None
    if isinstance(address, dict) and address.get("streetAddress"):
        region_postal = " ".join(
            str(part).strip() for part in (address.get("addressRegion"), address.get("postalCode")) if part
        )
        parts = [str(address["streetAddress"]).strip(), str(address.get("addressLocality") or "").strip(), region_postal]
        return ", ".join(part for part in parts if part)
    return None


def address_from_structured_data(soup: BeautifulSoup, _text: str) -> Optional[str]:
    for script in soup.select('script[type="application/ld+json"]'):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed JSON-LD block")
            continue
        for node in _walk_json_ld(data):
            assembled = _assemble_address(node.get("address"))
            if assembled:
                return assembled
    return None


def address_from_meta_tags(soup: BeautifulSoup, _text: str) -> Optional[str]:
    for meta in soup.select("meta[property], meta[name]"):
        content = meta.get("content")
        if content and looks_like_address(content):
            return content
    return None


def address_from_visible_text(_soup: BeautifulSoup, text: str) -> Optional[str]:
    for pattern in TEXT_ADDRESS_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return None


def _has_address_data_attribute(tag: Tag) -> bool:
    return any(name.startswith("data-") and "address" in name.lower() for name in tag.attrs)


def address_from_labelled_elements(soup: BeautifulSoup, _text: str) -> Optional[str]:
    candidates: list[Tag] = []
    for selector in ADDRESS_SELECTORS:
        candidates.extend(soup.select(selector))
    candidates.extend(soup.find_all(_has_address_data_attribute))

    for element in candidates:
        element_text = element.get_text(" ", strip=True)
        if element_text and looks_like_address(element_text):
            return element_text
    return None


ADDRESS_STRATEGIES: list[AddressStrategy] = [
    address_from_structured_data,
    address_from_meta_tags,
    address_from_visible_text,
    address_from_labelled_elements,
]


def extract_address(soup: BeautifulSoup, text: str) -> str:
    for strategy in ADDRESS_STRATEGIES:
        found = strategy(soup, text)
        if found and found.strip():
            return found
    return ""


# ---------------------------------------------------------------------------
# Phone
# ---------------------------------------------------------------------------

def extract_phone(soup: BeautifulSoup, text: str) -> str:
    link = soup.select_one('a[href^="tel:"]')
    if link is not None:
        digits = digits_only(str(link.get("href", ""))[len("tel:"):])
        if digits:
            return format_phone(digits)

    match = PHONE_PATTERN.search(text)
    if match:
        return f"+1 {match.group(1)} {match.group(2)} {match.group(3)}"
    return ""


def extract_fields(page: RenderedPage) -> ExtractedContent:
    """Pull the raw address and phone out of one rendered page."""
    soup = make_soup(page.html)
    text = page.text or visible_text(soup)
    return ExtractedContent(
        raw_address=normalize_whitespace(extract_address(soup, text)),
        raw_phone=extract_phone(soup, text),
    )

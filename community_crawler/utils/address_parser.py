"""
Address Segmentation

Splits a free-text US-style address into street, city, region code and
postal code. Community pages write the same location many ways:
- 123 Main St Springfield IL 62701
- 123 Main St, Springfield, IL 62701
- 4500 Lakeview Pkwy. Unit 2 Austin TX 78701-1234

The parser is a heuristic. It never raises and never drops input: when the
trailing region/postal pattern is missing, the whole string is returned as
the street address.
"""

import re
from typing import List

from community_crawler.models import ParsedAddress
from community_crawler.utils.normalize import normalize_whitespace

STREET_TYPES: List[str] = [
    "Street", "St",
    "Avenue", "Ave",
    "Road", "Rd",
    "Boulevard", "Blvd",
    "Drive", "Dr",
    "Lane", "Ln",
    "Way",
    "Circle", "Cir",
    "Court", "Ct",
    "Place", "Pl",
    "Highway", "Hwy",
    "Parkway", "Pkwy",
]

REGION_POSTAL_PATTERN = re.compile(r"^(?P<prefix>.+?),?\s+(?P<region>[A-Z]{2}),?\s+(?P<postal>\d{5}(?:-\d{4})?)$")

# Greedy prefix so the *last* street-type token wins.
STREET_CITY_PATTERN = re.compile(
    r"^(?P<street>.+\s(?:%s)\.?)(?:,?\s+(?P<city>.+))?$" % "|".join(STREET_TYPES),
    re.IGNORECASE,
)


def _clean(part: str) -> str:
    return part.strip(" ,")


def split_street_and_city(prefix: str) -> tuple[str, str]:
    """
    Split the text before the region code into (street, city).

    Street-type match first; positional word split when no street type is
    present.
    """
    prefix = _clean(prefix)
    match = STREET_CITY_PATTERN.match(prefix)
    if match:
        return _clean(match.group("street")), _clean(match.group("city") or "")

    words = prefix.split(" ")
    if len(words) >= 4:
        return " ".join(words[:3]), _clean(" ".join(words[3:]))
    if len(words) >= 2:
        mid = len(words) // 2
        return _clean(" ".join(words[:mid])), _clean(" ".join(words[mid:]))
    return prefix, ""


def parse_address(raw_address: str | None) -> ParsedAddress:
    """
    Parse an address string.

    Examples:
        "123 Main St Springfield IL 62701"
            -> street "123 Main St", city "Springfield", region "IL", postal "62701"
        "no address here"
            -> street "no address here", everything else empty
    """
    cleaned = normalize_whitespace(raw_address)
    if not cleaned:
        return ParsedAddress()

    match = REGION_POSTAL_PATTERN.match(cleaned)
    if not match:
        return ParsedAddress(street_address=cleaned)

    street, city = split_street_and_city(match.group("prefix"))
    return ParsedAddress(
        street_address=street,
        city=city,
        region_code=match.group("region"),
        postal_code=match.group("postal"),
    )

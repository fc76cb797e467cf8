"""Minimum-completeness gate applied before a record is written."""

from __future__ import annotations

from typing import List

from community_crawler.models import ExtractedContent, ParsedAddress


def rejection_reasons(content: ExtractedContent, parsed: ParsedAddress) -> List[str]:
    """Return what is missing; an empty list means the record is acceptable."""
    reasons = []
    if not content.raw_phone.strip():
        reasons.append("phone")
    if not parsed.postal_code.strip():
        reasons.append("zip")
    if not parsed.region_code.strip():
        reasons.append("state")
    if not parsed.street_address.strip() and not parsed.city.strip():
        reasons.append("address/city")
    return reasons


def is_valid_record(content: ExtractedContent, parsed: ParsedAddress) -> bool:
    return not rejection_reasons(content, parsed)

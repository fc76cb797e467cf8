"""Small text normalizers shared by extraction and record building."""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")
_NON_DIGIT = re.compile(r"\D")
_EMAIL_STRIP = re.compile(r"[^a-z0-9\s]")


def normalize_whitespace(text: str | None) -> str:
    if not text:
        return ""
    return _WHITESPACE.sub(" ", str(text)).strip()


def digits_only(text: str | None) -> str:
    return _NON_DIGIT.sub("", text or "")


def format_phone(raw: str | None) -> str:
    """
    Format a phone number as ``+1 AAA BBB CCCC``.

    10-digit numbers and 11-digit numbers starting with 1 are formatted;
    any other digit string is returned unformatted.
    """
    digits = digits_only(raw)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) == 10:
        return f"+1 {digits[:3]} {digits[3:6]} {digits[6:]}"
    return digits


def synthesize_email(name: str | None, domain: str) -> str:
    """``"Oak Park Apartments"`` -> ``"oakparkapartmentsmgr@<domain>"``; empty when nothing is left."""
    if not name:
        return ""
    local = _WHITESPACE.sub("", _EMAIL_STRIP.sub("", name.lower())).strip()
    if not local:
        return ""
    return f"{local}mgr@{domain}"

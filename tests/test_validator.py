from __future__ import annotations

from community_crawler.models import ExtractedContent, ParsedAddress
from community_crawler.services.validator import is_valid_record, rejection_reasons

COMPLETE = ParsedAddress(street_address="123 Main St", city="Springfield", region_code="IL", postal_code="62701")


def test_complete_record_is_valid() -> None:
    content = ExtractedContent(raw_address="123 Main St Springfield IL 62701", raw_phone="+1 217 555 0100")

    assert is_valid_record(content, COMPLETE)
    assert rejection_reasons(content, COMPLETE) == []


def test_empty_phone_is_rejected() -> None:
    content = ExtractedContent(raw_address="123 Main St Springfield IL 62701", raw_phone="")

    assert not is_valid_record(content, COMPLETE)
    assert rejection_reasons(content, COMPLETE) == ["phone"]


def test_empty_city_with_street_is_accepted() -> None:
    parsed = COMPLETE.model_copy(update={"city": ""})

    assert is_valid_record(ExtractedContent(raw_phone="+1 217 555 0100"), parsed)


def test_city_without_street_is_accepted() -> None:
    parsed = COMPLETE.model_copy(update={"street_address": ""})

    assert is_valid_record(ExtractedContent(raw_phone="+1 217 555 0100"), parsed)


def test_every_missing_field_is_reported() -> None:
    reasons = rejection_reasons(ExtractedContent(), ParsedAddress())

    assert reasons == ["phone", "zip", "state", "address/city"]


def test_whitespace_only_fields_count_as_missing() -> None:
    parsed = ParsedAddress(street_address="  ", city=" ", region_code=" ", postal_code=" ")

    assert rejection_reasons(ExtractedContent(raw_phone="   "), parsed) == ["phone", "zip", "state", "address/city"]

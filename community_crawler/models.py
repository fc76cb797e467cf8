from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator

from community_crawler.utils.normalize import normalize_whitespace, synthesize_email
from community_crawler.utils.time import iso_utc, now_utc


class LinkOutcome(Enum):
    ACCEPTED = "ACCEPTED"   # Record passed validation and was written
    REJECTED = "REJECTED"   # Page loaded but data incomplete
    FAILED = "FAILED"       # Navigation, extraction or persistence error


class CommunityLink(BaseModel):
    """One community page found in the directory. ``source_url`` is the key."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    origin_region: str = Field(
        default="",
        validation_alias=AliasChoices("origin_region", "originRegion", "state"),
        serialization_alias="originRegion",
    )
    name: str = Field(
        default="",
        validation_alias=AliasChoices("name", "communityName"),
    )
    source_url: str = Field(
        validation_alias=AliasChoices("source_url", "sourceUrl", "communityUrl"),
        serialization_alias="sourceUrl",
    )


class ExtractedContent(BaseModel):
    raw_address: str = ""
    raw_phone: str = ""

    @field_validator("raw_address", "raw_phone", mode="before")
    @classmethod
    def _collapse(cls, value: Optional[str]) -> str:
        return normalize_whitespace(value)


class ParsedAddress(BaseModel):
    street_address: str = ""
    city: str = ""
    region_code: str = ""
    postal_code: str = ""


class PropertyRecord(BaseModel):
    origin_region: str = ""
    name: str = ""
    street_address: str = ""
    city: str = ""
    region_code: str = ""
    postal_code: str = ""
    phone: str = ""
    email: str = ""

    @classmethod
    def build(
        cls,
        link: CommunityLink,
        parsed: ParsedAddress,
        phone: str,
        email_domain: str,
    ) -> "PropertyRecord":
        return cls(
            origin_region=link.origin_region,
            name=link.name,
            street_address=parsed.street_address,
            city=parsed.city,
            region_code=parsed.region_code,
            postal_code=parsed.postal_code,
            phone=phone,
            email=synthesize_email(link.name, email_domain),
        )

    def csv_row(self) -> List[str]:
        """Values in output column order."""
        return [
            self.origin_region,
            self.name,
            self.street_address,
            self.city,
            self.region_code,
            self.postal_code,
            self.phone,
            self.email,
        ]


class ProgressState(BaseModel):
    """Durable record of every source URL already handled."""

    model_config = ConfigDict(populate_by_name=True)

    started_at: datetime = Field(default_factory=now_utc, alias="startedAt")
    processed_urls: List[str] = Field(default_factory=list, alias="processedUrls")
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")
    error: Optional[str] = None

    @field_validator("processed_urls", mode="after")
    @classmethod
    def _unique(cls, urls: List[str]) -> List[str]:
        return list(dict.fromkeys(url for url in urls if url))

    @field_serializer("started_at", "last_updated")
    def _iso(self, value: Optional[datetime]) -> Optional[str]:
        return iso_utc(value) if value else None

    @property
    def total_processed(self) -> int:
        return len(self.processed_urls)

    def to_json_dict(self) -> dict:
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        payload["totalProcessed"] = self.total_processed
        return payload


class LinkResult(BaseModel):
    link: CommunityLink
    outcome: LinkOutcome
    record: Optional[PropertyRecord] = None
    reason: str = ""                  # Human readable explanation
    error_kind: Optional[str] = None  # timeout, network, blocked, navigation, extraction, persist


class WorkerReport(BaseModel):
    worker_id: int
    assigned: int = 0
    processed: int = 0
    accepted: int = 0
    rejected: int = 0
    failed: int = 0

    def count(self, result: LinkResult) -> None:
        self.processed += 1
        if result.outcome is LinkOutcome.ACCEPTED:
            self.accepted += 1
        elif result.outcome is LinkOutcome.REJECTED:
            self.rejected += 1
        else:
            self.failed += 1


class CrawlSummary(BaseModel):
    total_links: int = 0
    already_processed: int = 0
    remaining: int = 0
    workers: int = 0
    processed: int = 0
    accepted: int = 0
    rejected: int = 0
    failed: int = 0
    started_at: datetime = Field(default_factory=now_utc)
    finished_at: Optional[datetime] = None

"""
Directory (sitemap) scraper.

The properties directory groups communities by region:

    .sitemap-serp-section
        h2 a                                        -> region name
        .sitemap-serp-section-second-level h3 a     -> community name + href
"""

from __future__ import annotations

from typing import List
from urllib.parse import urljoin

from loguru import logger

from community_crawler.models import CommunityLink
from community_crawler.scrapers.base import BrowserSession, PageLoadError
from community_crawler.scrapers.field_extractor import make_soup
from community_crawler.utils.normalize import normalize_whitespace

SECTION_SELECTOR = ".sitemap-serp-section"
REGION_SELECTOR = "h2 a"
COMMUNITY_SELECTOR = ".sitemap-serp-section-second-level h3 a"


class DiscoveryError(RuntimeError):
    """The directory page could not be loaded or yielded no links."""


def parse_directory_html(html: str, base_url: str) -> List[CommunityLink]:
    soup = make_soup(html)
    links: List[CommunityLink] = []
    for section in soup.select(SECTION_SELECTOR):
        region_el = section.select_one(REGION_SELECTOR)
        region = normalize_whitespace(region_el.get_text()) if region_el else ""

        for anchor in section.select(COMMUNITY_SELECTOR):
            name = normalize_whitespace(anchor.get_text())
            href = (anchor.get("href") or "").strip()
            if not name or not href:
                continue
            links.append(CommunityLink(origin_region=region, name=name, source_url=urljoin(base_url, href)))
    return links


async def discover_links(session: BrowserSession, root_url: str) -> List[CommunityLink]:
    """Render the directory page and return every community link in page order."""
    settings = session.settings
    logger.info(f"Discovering community links from {root_url}")
    try:
        fetcher = await session.open_fetcher(settle_ms=settings.discovery_settle_ms)
    except Exception as exc:
        raise DiscoveryError(f"Could not start browser for discovery: {exc}") from exc

    try:
        page = await fetcher.fetch(root_url, timeout_ms=settings.discovery_timeout_ms)
    except PageLoadError as exc:
        raise DiscoveryError(f"Could not load directory page: {exc}") from exc
    finally:
        await fetcher.close()

    try:
        links = parse_directory_html(page.html, page.url or root_url)
    except Exception as exc:
        raise DiscoveryError(f"Could not parse directory page: {exc}") from exc

    if not links:
        raise DiscoveryError(f"No community links found on {root_url}")

    logger.success(f"Discovered {len(links)} community links")
    return links

"""
Page rendering, directory discovery, and field extraction.
"""
from .base import BrowserSession, PageFetcher, PageLoadError, PlaywrightPageFetcher, RenderedPage
from .directory_scraper import DiscoveryError, discover_links, parse_directory_html
from .field_extractor import extract_address, extract_fields, extract_phone

"""On-disk cache of the discovered community links."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from community_crawler.models import CommunityLink
from community_crawler.utils.time import iso_utc


class LinkCache:
    """
    ``{"extractedAt": ISO, "totalLinks": N, "links": [...]}`` on disk.

    A bare JSON list of links is accepted on load as well.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[List[CommunityLink]]:
        """Return cached links, or None when the cache is missing, unreadable or empty."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            raw_links = data.get("links") if isinstance(data, dict) else data
            links = [CommunityLink.model_validate(item) for item in raw_links or []]
        except (OSError, ValueError, ValidationError, AttributeError, TypeError) as exc:
            logger.error(f"Error loading link cache {self.path}: {exc}")
            return None
        if not links:
            # An empty cache means discovery never finished; rediscover
            logger.warning(f"Link cache {self.path} holds no links; ignoring it")
            return None
        logger.info(f"Loaded {len(links)} links from {self.path}")
        return links

    def save(self, links: List[CommunityLink]) -> bool:
        payload = {
            "extractedAt": iso_utc(),
            "totalLinks": len(links),
            "links": [link.model_dump(by_alias=True) for link in links],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_name(self.path.name + ".tmp")
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error(f"Error saving link cache {self.path}: {exc}")
            return False
        logger.success(f"Saved {len(links)} links to {self.path}")
        return True

"""Data models for feed items and recipients."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit

from .constants import ALL_CATEGORIES_VALUE


def normalize_link(link: str) -> str:
    """
    Canonical form of a link used for watermark comparison and dedup.

    The link is trimmed, scheme and host are lower-cased and a single
    trailing "/" is removed. Path and query are left untouched.
    """
    link = (link or "").strip()
    if not link:
        return ""
    parts = urlsplit(link)
    if parts.scheme and parts.netloc:
        link = urlunsplit((
            parts.scheme.lower(),
            parts.netloc.lower(),
            parts.path,
            parts.query,
            parts.fragment,
        ))
    if link.endswith("/"):
        link = link[:-1]
    return link


@dataclass(frozen=True)
class FeedItem:
    """Represents one listing from the feed."""
    id: str                           # guid, or link, or "title:date"
    title: str
    link: str                         # raw link, used for display and hyperlinks
    published_at: Optional[datetime]  # None when the date is missing or unparsable
    category: str
    summary: str                      # plain text, HTML stripped
    published_raw: str = ""           # date string exactly as the feed sent it

    @property
    def normalized_link(self) -> str:
        return normalize_link(self.link)

    @property
    def sort_timestamp(self) -> float:
        """Seconds since the epoch; unparsable dates sort as the oldest."""
        if self.published_at is None:
            return 0.0
        return self.published_at.timestamp()


@dataclass
class Recipient:
    """Represents one chat subscribed to the feed."""
    chat_id: str
    categories: List[str] = field(default_factory=list)  # empty = unconfigured
    exp_levels: List[str] = field(default_factory=list)  # empty = any experience
    is_active: bool = True
    last_job_link: Optional[str] = None                  # watermark, normalized
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.categories)

    @property
    def wants_all_categories(self) -> bool:
        return ALL_CATEGORIES_VALUE in self.categories

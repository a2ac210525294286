"""RSS feed client for fetching job listings."""

import logging
import re
from datetime import datetime, timezone
from html import unescape
from typing import Iterable, List, Optional
from urllib.parse import urlencode

import feedparser
import httpx

from .config import FeedConfig
from .constants import ALL_CATEGORIES_VALUE, sort_exp_levels
from .errors import FetchError
from .models import FeedItem

logger = logging.getLogger(__name__)

# Parser warnings that do not mean the document is broken.
_BENIGN_BOZO = (
    feedparser.CharacterEncodingOverride,
    feedparser.NonXMLContentType,
)


def build_feed_url(
    category: Optional[str],
    exp_levels: Iterable[str],
    base_url: str,
) -> str:
    """
    Build the feed URL for one category and a set of experience levels.

    Args:
        category: Category selector, or None / the "all" sentinel for no filter.
        exp_levels: Experience level ids, one repeated parameter each.
        base_url: Feed endpoint.

    Returns:
        The request URL. The same inputs always produce the same URL.
    """
    params = []
    if category and category != ALL_CATEGORIES_VALUE:
        params.append(("primary_keyword", category))
    for level in sort_exp_levels(exp_levels):
        params.append(("exp_level", level))

    if not params:
        return base_url
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode(params)}"


def strip_html(text: str) -> str:
    """Remove tags, decode entities and collapse whitespace."""
    text = re.sub(r"<[^>]+>", " ", text or "")
    text = unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def _entry_category(entry) -> str:
    for tag in entry.get("tags") or []:
        term = (tag.get("term") or "").strip()
        if term:
            return term
    category = entry.get("category")
    if isinstance(category, str) and category.strip():
        return category.strip()
    return "N/A"


def _entry_published(entry) -> Optional[datetime]:
    # feedparser returns time_struct in UTC
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return None


def parse_feed(content) -> List[FeedItem]:
    """
    Parse an RSS document into feed items, keeping the provider's order.

    Args:
        content: Raw document, bytes or str.

    Returns:
        List of FeedItem objects, freshest first as served.

    Raises:
        FetchError: If the document is not a readable feed.
    """
    feed = feedparser.parse(content)

    if feed.bozo and not isinstance(feed.get("bozo_exception"), _BENIGN_BOZO):
        raise FetchError(f"Feed parsing error: {feed.get('bozo_exception')}")

    items = []
    for entry in feed.entries:
        link = (entry.get("link") or "").strip()
        if not link:
            continue

        title = entry.get("title") or "Untitled"
        published_raw = entry.get("published") or entry.get("updated") or ""
        items.append(FeedItem(
            id=entry.get("id") or link or f"{title}:{published_raw}",
            title=title,
            link=link,
            published_at=_entry_published(entry),
            category=_entry_category(entry),
            summary=strip_html(entry.get("summary") or entry.get("description") or ""),
            published_raw=published_raw,
        ))
    return items


class FeedClient:
    """Fetches one filtered view of the feed per call."""

    def __init__(self, config: FeedConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self._http = http_client or httpx.Client(
            timeout=config.timeout_seconds,
            headers={"User-Agent": config.user_agent},
            follow_redirects=True,
        )

    def build_url(self, category: Optional[str], exp_levels: Iterable[str]) -> str:
        return build_feed_url(category, exp_levels, self.config.base_url)

    def fetch(self, category: Optional[str], exp_levels: Iterable[str]) -> List[FeedItem]:
        """
        Fetch and parse the feed for one category.

        Args:
            category: Category selector, or None for every category.
            exp_levels: Experience level ids to filter by.

        Returns:
            Items freshest first, as returned by the provider.

        Raises:
            FetchError: On transport failure, non-success status or parse failure.
        """
        url = self.build_url(category, exp_levels)
        try:
            response = self._http.get(url, timeout=self.config.timeout_seconds)
        except httpx.HTTPError as e:
            raise FetchError(f"RSS request to {url} failed: {e}") from e

        if not response.is_success:
            raise FetchError(f"RSS request failed with status {response.status_code}")

        items = parse_feed(response.content)
        logger.debug(f"Fetched {len(items)} items from {url}")
        return items

    def close(self) -> None:
        self._http.close()

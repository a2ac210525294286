"""Merge per-category feed fetches into one freshness-ordered sequence."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Sequence

from .constants import ALL_CATEGORIES_VALUE, sort_categories
from .models import FeedItem
from .rss_client import FeedClient

logger = logging.getLogger(__name__)


def merge_items(batches: Iterable[Sequence[FeedItem]]) -> List[FeedItem]:
    """
    Merge fetched batches, dropping repeated links, freshest first.

    The first occurrence of a normalized link wins, so callers must pass the
    batches in a stable order. Items with no usable date sort as the oldest;
    ties keep their merged order.
    """
    seen = set()
    merged = []
    for batch in batches:
        for item in batch:
            key = item.normalized_link
            if key in seen:
                continue
            seen.add(key)
            merged.append(item)

    merged.sort(key=lambda item: item.sort_timestamp, reverse=True)
    return merged


class FeedAggregator:
    """Fetches every subscribed category for a recipient and merges the result."""

    def __init__(self, client: FeedClient, max_workers: int = 4):
        self.client = client
        self.max_workers = max(1, max_workers)

    def feed_urls(self, categories: Iterable[str], exp_levels: Iterable[str]) -> List[str]:
        """URLs that fetch_merged would request, for logging."""
        selected = sort_categories(categories)
        if not selected:
            return []
        if ALL_CATEGORIES_VALUE in selected:
            return [self.client.build_url(None, exp_levels)]
        return [self.client.build_url(category, exp_levels) for category in selected]

    def fetch_merged(self, categories: Iterable[str], exp_levels: Iterable[str]) -> List[FeedItem]:
        """
        Fetch all subscribed categories and merge them.

        Args:
            categories: Category filters of the recipient.
            exp_levels: Experience level filters of the recipient.

        Returns:
            Deduplicated items, freshest first. Empty if no category is set.

        Raises:
            FetchError: If any single category request fails.
        """
        selected = sort_categories(categories)
        exp_levels = list(exp_levels)
        if not selected:
            return []

        if ALL_CATEGORIES_VALUE in selected:
            return merge_items([self.client.fetch(None, exp_levels)])

        if len(selected) == 1:
            return merge_items([self.client.fetch(selected[0], exp_levels)])

        workers = min(len(selected), self.max_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="feed-fetch") as pool:
            futures = [pool.submit(self.client.fetch, category, exp_levels) for category in selected]
            # Collected in category order, not completion order
            batches = [future.result() for future in futures]

        return merge_items(batches)

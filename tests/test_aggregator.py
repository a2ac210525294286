"""Tests for merging per-category feed fetches."""
import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from job_feed_notifier.aggregator import FeedAggregator, merge_items
from job_feed_notifier.constants import ALL_CATEGORIES_VALUE
from job_feed_notifier.errors import FetchError
from job_feed_notifier.models import FeedItem


def _make_item(link, hour=None, title=None):
    """Create a test item published at the given hour (None = unparsable date)."""
    return FeedItem(
        id=link,
        title=title or link,
        link=link,
        published_at=datetime(2025, 1, 1, hour, tzinfo=timezone.utc) if hour is not None else None,
        category="N/A",
        summary="",
    )


def _client(batches):
    client = MagicMock()
    client.fetch.side_effect = lambda category, exp_levels: batches[category]
    client.build_url.side_effect = lambda category, exp_levels: f"url:{category}"
    return client


def test_no_categories_returns_nothing():
    """Unconfigured recipients are never fetched."""
    client = _client({})
    aggregator = FeedAggregator(client)

    assert aggregator.fetch_merged([], ["1y"]) == []
    client.fetch.assert_not_called()


def test_all_categories_issues_one_unfiltered_request():
    """The "all" sentinel means one request without a category parameter."""
    client = _client({None: [_make_item("https://djinni.co/jobs/1", 1)]})
    aggregator = FeedAggregator(client)

    items = aggregator.fetch_merged([ALL_CATEGORIES_VALUE, "Python"], ["2y"])

    client.fetch.assert_called_once_with(None, ["2y"])
    assert len(items) == 1


def test_one_request_per_category():
    """Each distinct category is fetched exactly once."""
    client = _client({"Python": [], "Java": []})
    aggregator = FeedAggregator(client)

    aggregator.fetch_merged(["Python", "Java", " Python "], [])

    fetched = sorted(call.args[0] for call in client.fetch.call_args_list)
    assert fetched == ["Java", "Python"]


def test_overlapping_links_are_merged_once():
    """Links differing only by host casing or a trailing slash are one item."""
    client = _client({
        "Python": [_make_item("https://djinni.co/jobs/1/", 5), _make_item("https://djinni.co/jobs/2", 3)],
        "Java": [_make_item("HTTPS://Djinni.co/jobs/1", 5), _make_item("https://djinni.co/jobs/3", 4)],
    })
    aggregator = FeedAggregator(client)

    items = aggregator.fetch_merged(["Python", "Java"], [])

    assert [item.normalized_link for item in items] == [
        "https://djinni.co/jobs/1",
        "https://djinni.co/jobs/3",
        "https://djinni.co/jobs/2",
    ]


def test_first_category_wins_regardless_of_completion_order():
    """Dedup keeps the item from the first category even if it finishes last."""
    java_may_finish = threading.Event()

    def fetch(category, exp_levels):
        if category == "Java":
            java_may_finish.wait(timeout=2)
            return [_make_item("https://djinni.co/jobs/1", 1, title="from java")]
        java_may_finish.set()
        return [_make_item("https://djinni.co/jobs/1", 1, title="from python")]

    client = MagicMock()
    client.fetch.side_effect = fetch
    aggregator = FeedAggregator(client)

    items = aggregator.fetch_merged(["Python", "Java"], [])

    # Catalogue order puts Java before Python
    assert [item.title for item in items] == ["from java"]


def test_failed_category_fails_the_whole_merge():
    """No partial aggregation when one request fails."""
    client = MagicMock()

    def fetch(category, exp_levels):
        if category == "Java":
            raise FetchError("RSS request failed with status 503")
        return [_make_item("https://djinni.co/jobs/1", 1)]

    client.fetch.side_effect = fetch
    aggregator = FeedAggregator(client)

    with pytest.raises(FetchError):
        aggregator.fetch_merged(["Python", "Java"], [])


def test_merge_sorts_freshest_first_with_undated_last():
    """Items with unparsable dates sort as the oldest."""
    merged = merge_items([
        [_make_item("https://djinni.co/jobs/a"), _make_item("https://djinni.co/jobs/b", 2)],
        [_make_item("https://djinni.co/jobs/c", 9)],
    ])

    assert [item.link for item in merged] == [
        "https://djinni.co/jobs/c",
        "https://djinni.co/jobs/b",
        "https://djinni.co/jobs/a",
    ]


def test_single_category_is_still_sorted_by_date():
    """Freshness ordering applies even to one category."""
    client = _client({"Python": [_make_item("https://djinni.co/jobs/old", 1), _make_item("https://djinni.co/jobs/new", 8)]})
    aggregator = FeedAggregator(client)

    items = aggregator.fetch_merged(["Python"], [])

    assert [item.link for item in items] == ["https://djinni.co/jobs/new", "https://djinni.co/jobs/old"]


def test_feed_urls_match_requests():
    """feed_urls reports one URL per fetched category."""
    aggregator = FeedAggregator(_client({}))

    assert aggregator.feed_urls(["Python", "Java"], []) == ["url:Java", "url:Python"]
    assert aggregator.feed_urls([ALL_CATEGORIES_VALUE], []) == ["url:None"]
    assert aggregator.feed_urls([], []) == []

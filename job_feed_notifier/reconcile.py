"""Work out which feed items a recipient has not seen yet.

A recipient's position in the feed is a single watermark: the normalized
link of the newest item already delivered (or silently primed). Given a
freshly fetched, freshest-first snapshot, everything above the watermark's
item is new. If the watermark is unknown or has dropped out of the snapshot,
nothing is delivered and the watermark is moved to the top of the feed.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .models import FeedItem, normalize_link

STATUS_EMPTY = "empty"
STATUS_PRIMED = "init"
STATUS_UP_TO_DATE = "up_to_date"
STATUS_ANCHOR_MISSING = "anchor_missing"
STATUS_NEW_ITEMS = "new_items"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of comparing a feed snapshot against a watermark."""
    to_deliver: List[FeedItem] = field(default_factory=list)  # oldest first
    next_watermark: Optional[str] = None
    status: str = STATUS_EMPTY
    latest_link: Optional[str] = None


def reconcile(items: Sequence[FeedItem], watermark: Optional[str]) -> ReconcileResult:
    """
    Compute the new items to deliver and the watermark to store afterwards.

    Args:
        items: Feed snapshot, freshest first.
        watermark: Normalized link of the last delivered item, or None if the
            recipient has never been polled.

    Returns:
        ReconcileResult with items to deliver oldest first.
    """
    if watermark is not None:
        watermark = normalize_link(watermark) or None

    if not items:
        return ReconcileResult(next_watermark=watermark, status=STATUS_EMPTY)

    latest_link = items[0].normalized_link

    if watermark is None:
        return ReconcileResult(
            next_watermark=latest_link,
            status=STATUS_PRIMED,
            latest_link=latest_link,
        )

    anchor_index = None
    for index, item in enumerate(items):
        if item.normalized_link == watermark:
            anchor_index = index
            break

    if anchor_index == 0:
        return ReconcileResult(
            next_watermark=watermark,
            status=STATUS_UP_TO_DATE,
            latest_link=latest_link,
        )

    if anchor_index is None:
        return ReconcileResult(
            next_watermark=latest_link,
            status=STATUS_ANCHOR_MISSING,
            latest_link=latest_link,
        )

    newer = []
    seen = set()
    for item in items[:anchor_index]:
        key = item.normalized_link
        if key in seen:
            continue
        seen.add(key)
        newer.append(item)
    newer.reverse()

    return ReconcileResult(
        to_deliver=newer,
        next_watermark=latest_link,
        status=STATUS_NEW_ITEMS,
        latest_link=latest_link,
    )

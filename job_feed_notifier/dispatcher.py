"""Deliver new feed items to one recipient."""

import logging
from typing import Callable, Optional

from .aggregator import FeedAggregator
from .db import SettingsStore
from .errors import RecipientUnreachableError
from .formatter import format_job_message
from .models import FeedItem, Recipient
from .notifier import Notifier
from .reconcile import reconcile

logger = logging.getLogger(__name__)


class FeedDispatcher:
    """Runs one reconcile-and-deliver cycle for a single recipient."""

    def __init__(
        self,
        store: SettingsStore,
        aggregator: FeedAggregator,
        notifier: Notifier,
        render: Callable[[FeedItem], str] = format_job_message,
    ):
        self.store = store
        self.aggregator = aggregator
        self.notifier = notifier
        self.render = render

    def run(self, recipient: Recipient) -> int:
        """
        Fetch, reconcile and deliver new items to a recipient.

        The watermark only moves once the whole batch has been sent. If a
        delivery fails, it stays where it was, so the undelivered items are
        picked up again on the next successful cycle.

        Args:
            recipient: Recipient as loaded at the start of the cycle.

        Returns:
            Number of messages delivered.

        Raises:
            FetchError: If the feed could not be fetched.
            RecipientUnreachableError: After deactivating the recipient.
            OtherTransportError: On any other delivery failure.
        """
        if not recipient.is_active or not recipient.is_configured:
            return 0

        chat_id = recipient.chat_id
        urls = ",".join(self.aggregator.feed_urls(recipient.categories, recipient.exp_levels))
        items = self.aggregator.fetch_merged(recipient.categories, recipient.exp_levels)
        result = reconcile(items, recipient.last_job_link)

        if not result.to_deliver:
            if result.next_watermark != recipient.last_job_link:
                self.store.set_watermark(chat_id, result.next_watermark)
            logger.info(
                f"poll chat={chat_id} {result.status} urls={urls} jobs={len(items)} "
                f"previous_link={recipient.last_job_link or 'none'} "
                f"latest_link={result.latest_link or 'none'} sent=0"
            )
            return 0

        sent = 0
        for item in result.to_deliver:
            try:
                self.notifier.send(chat_id, self.render(item))
            except RecipientUnreachableError as e:
                self.store.set_active(chat_id, False)
                logger.warning(f"Chat {chat_id} deactivated after {sent} deliveries: {e}")
                raise
            sent += 1

        self.store.set_watermark(chat_id, result.next_watermark)
        logger.info(
            f"poll chat={chat_id} urls={urls} jobs={len(items)} previous_link={recipient.last_job_link} "
            f"latest_link={result.latest_link} new_jobs={len(result.to_deliver)} sent={sent}"
        )
        return sent

    def prime(self, recipient: Optional[Recipient]) -> Optional[str]:
        """
        Move the watermark to the freshest item without delivering anything.

        Used after a recipient changes filters. Failures are logged; the next
        scheduled cycle re-primes through the anchor-missing path.

        Returns:
            The stored watermark, or None if nothing was stored.
        """
        if recipient is None or not recipient.is_configured:
            return None

        chat_id = recipient.chat_id
        try:
            urls = ",".join(self.aggregator.feed_urls(recipient.categories, recipient.exp_levels))
            items = self.aggregator.fetch_merged(recipient.categories, recipient.exp_levels)
        except Exception as e:
            logger.error(f"Prime feed failed for chat {chat_id}: {e}")
            return None

        latest_link = items[0].normalized_link if items else None
        if latest_link:
            self.store.set_watermark(chat_id, latest_link)
        logger.info(f"prime chat={chat_id} urls={urls} jobs={len(items)} latest_link={latest_link or 'none'}")
        return latest_link

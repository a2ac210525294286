"""Poll every configured recipient once per tick."""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .db import SettingsStore
from .dispatcher import FeedDispatcher

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """Counters for one completed tick."""
    recipients: int = 0
    sent: int = 0
    failed: int = 0


class PollScheduler:
    """
    Drives the dispatcher for all configured recipients.

    Ticks are single-flight: a tick that starts while another one is still
    running returns immediately without doing anything. Recipients are
    processed one at a time and a failure for one of them never stops the
    rest of the tick.
    """

    def __init__(self, store: SettingsStore, dispatcher: FeedDispatcher):
        self.store = store
        self.dispatcher = dispatcher
        self._tick_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._tick_lock.locked()

    def tick(self) -> Optional[TickResult]:
        """
        Run one poll cycle.

        Returns:
            TickResult, or None if the tick was skipped because the previous
            one is still running.
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.info("poll tick skipped: previous cycle is still running")
            return None

        try:
            recipients = self.store.list_configured()
            result = TickResult(recipients=len(recipients))
            logger.info(f"poll tick started: users={len(recipients)}")

            for recipient in recipients:
                try:
                    result.sent += self.dispatcher.run(recipient)
                except Exception as e:
                    result.failed += 1
                    logger.error(f"Polling failed for chat {recipient.chat_id}: {e}")

            logger.info(f"poll tick finished: sent={result.sent} failed={result.failed}")
            return result
        finally:
            self._tick_lock.release()

    def poll_now(self, chat_id) -> int:
        """
        On-demand poll for one chat, outside the single-flight guard.

        Errors propagate so the caller can tell the user.
        """
        recipient = self.store.get(chat_id)
        if recipient is None:
            return 0
        return self.dispatcher.run(recipient)

    def prime(self, chat_id) -> Optional[str]:
        """Silently move a chat's watermark to the top of its feed."""
        return self.dispatcher.prime(self.store.get(chat_id))

"""Uncommitted filter edits, kept in memory only."""

from collections import OrderedDict
from typing import Callable, Iterable, Optional, Set


class DraftStore:
    """
    Per-chat draft selections for one kind of filter.

    A draft lives from the moment an editor is opened until it is saved or the
    process restarts. At most max_drafts are kept; touching a draft makes it
    the most recent one and the least recently touched draft is dropped first.
    """

    def __init__(self, max_drafts: int = 1000):
        self.max_drafts = max(1, max_drafts)
        self._drafts: "OrderedDict[str, Set[str]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._drafts)

    def __contains__(self, chat_id) -> bool:
        return str(chat_id) in self._drafts

    def open(self, chat_id, values: Iterable[str]) -> Set[str]:
        """Start a fresh draft from the given values, replacing any existing one."""
        draft = set(values)
        self._put(str(chat_id), draft)
        return draft

    def get(self, chat_id, seed: Callable[[], Iterable[str]]) -> Set[str]:
        """
        Return the chat's draft, seeding it lazily on first touch.

        Args:
            chat_id: Chat identity.
            seed: Called only when no draft exists; usually reads persisted settings.
        """
        key = str(chat_id)
        draft = self._drafts.get(key)
        if draft is None:
            draft = set(seed())
            self._put(key, draft)
        else:
            self._drafts.move_to_end(key)
        return draft

    def pop(self, chat_id) -> Optional[Set[str]]:
        """Remove and return the draft, e.g. after it has been saved."""
        return self._drafts.pop(str(chat_id), None)

    def _put(self, key: str, draft: Set[str]) -> None:
        self._drafts[key] = draft
        self._drafts.move_to_end(key)
        while len(self._drafts) > self.max_drafts:
            self._drafts.popitem(last=False)
